"""Interface definitions for every external collaborator.

Business logic talks to upstream APIs and storage only through these
abstract base classes; concrete adapters are built in ``main.py`` and
injected, so tests can substitute mocks.

    Interface            →  Concrete implementations (in perceptacle/providers/)
    ─────────────────────────────────────────────────────────────────────
    IGeocodingProvider   →  NominatimProvider, PhotonProvider,
                            CensusOneLineProvider, CensusAddressProvider,
                            ArcGISProvider, OpenCageProvider
    ICacheProvider       →  MemoryCacheProvider
    ICollectionStore     →  JSONFileStore
"""

from perceptacle.interfaces.cache_provider import ICacheProvider
from perceptacle.interfaces.collection_store import ICollectionStore
from perceptacle.interfaces.geocoding_provider import IGeocodingProvider

__all__ = [
    "ICacheProvider",
    "ICollectionStore",
    "IGeocodingProvider",
]
