# Brand-specific data adapters
# Each brand module contains hardcoded logic specific to that brand's exports

from .kuhl import KuhlFrameAdapter, LoadedData

__all__ = ["KuhlFrameAdapter", "LoadedData"]
