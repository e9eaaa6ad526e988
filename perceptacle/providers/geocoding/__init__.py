"""Geocoding provider implementations, one class per upstream service.

Instances are arranged into the search fallback chain by main.py, in order:
    1. NominatimProvider(bounded=True)   viewport-restricted OSM search
    2. NominatimProvider()               global OSM search
    3. PhotonProvider                    OSM with house-number interpolation;
                                         also serves autocomplete
    4. CensusOneLineProvider             US only
    5. CensusAddressProvider             US only, Public_AR_Current
    6. CensusAddressProvider             US only, Public_AR_Census2020
    7. ArcGISProvider                    rural / global fallback
    8. OpenCageProvider                  only when OPENCAGE_KEY is set
"""

from perceptacle.providers.geocoding.arcgis_provider import ArcGISProvider
from perceptacle.providers.geocoding.census_provider import (
    CensusAddressProvider,
    CensusOneLineProvider,
)
from perceptacle.providers.geocoding.nominatim_provider import NominatimProvider
from perceptacle.providers.geocoding.opencage_provider import OpenCageProvider
from perceptacle.providers.geocoding.photon_provider import PhotonProvider

__all__ = [
    "ArcGISProvider",
    "CensusAddressProvider",
    "CensusOneLineProvider",
    "NominatimProvider",
    "OpenCageProvider",
    "PhotonProvider",
]
