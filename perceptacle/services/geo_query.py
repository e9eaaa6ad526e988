"""Query classification and normalization for the geocoding chain.

Pure functions, no I/O.  A raw search string is classified as US-like or
international, normalized accordingly, and (for the Census structured stage)
split into street / city / state / ZIP parts.

The parsing is a heuristic tuned for ``"123 Main St, City, ST 12345"``; when
it cannot find a city the whole prefix is returned as ``street`` and the
Census stage simply gets a worse query.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from perceptacle.models.geocode import BoundingBox, GeocodeQuery

_STATES = (
    "AL|AK|AZ|AR|CA|CO|CT|DC|DE|FL|GA|HI|IA|ID|IL|IN|KS|KY|LA|MA|MD|ME|MI|MN|MO|"
    "MS|MT|NC|ND|NE|NH|NJ|NM|NV|NY|OH|OK|OR|PA|RI|SC|SD|TN|TX|UT|VA|VT|WA|WI|WV|WY"
)
_STATE_RE = re.compile(rf"\b({_STATES})\b")
_ZIP_RE = re.compile(r"\b\d{5}(?:-\d{4})?\b")
_COUNTRY_RE = re.compile(r"\bUSA\b|\bUNITED STATES\b")
_TRAILING_ZIP_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\s*$")
_HOUSE_NUMBER_RE = re.compile(r"^\d+[A-Z]?$")

# Abbreviation → expansion, applied only to US queries.  St, Dr and Ct are
# left out: "St. Louis", "Dr. King Blvd" and the CT state code.
_STREET_SUFFIXES = {
    "RD": "Road",
    "AVE": "Avenue",
    "HWY": "Highway",
    "LN": "Lane",
    "BLVD": "Boulevard",
}
_SUFFIX_RE = re.compile(r"\b(" + "|".join(_STREET_SUFFIXES) + r")\b\.?", re.IGNORECASE)


class USAddressParts(NamedTuple):
    """Structured pieces of a US address; missing parts are empty strings."""

    street: str
    city: str
    state: str
    zip: str


def is_likely_us(query: str) -> bool:
    """Return ``True`` if *query* mentions a ZIP, a state code or the USA."""
    text = (query or "").upper()
    return bool(_ZIP_RE.search(text) or _STATE_RE.search(text) or _COUNTRY_RE.search(text))


def normalize_us_query(query: str) -> str:
    """Collapse separators, shorten ZIP+4 and expand street suffixes.

    >>> normalize_us_query("123 Union Star Rd.,  West Fork, AR 72774-1234")
    '123 Union Star Road West Fork AR 72774'
    """
    text = re.sub(r"[\s,]+", " ", (query or "").strip())
    text = re.sub(r"\b(\d{5})-\d{4}\b", r"\1", text)
    text = _SUFFIX_RE.sub(lambda m: _STREET_SUFFIXES[m.group(1).upper()], text)
    return text.strip()


def normalize_intl_query(query: str) -> str:
    """Collapse whitespace and comma runs; no abbreviation expansion."""
    text = (query or "").strip()
    text = re.sub(r"\s+,", ",", text)
    text = re.sub(r",\s+", ", ", text)
    return re.sub(r"[\s,]+", " ", text).strip()


def split_us_address(query: str) -> USAddressParts:
    """Split a US one-line address into street, city, state and ZIP.

    The last state token wins, so a street whose name is also a state code
    (``"12 Or Way, Salem, OR"``) still parses.  A ZIP only counts when it
    ends the string after the state.
    """
    text = (query or "").strip()
    text = re.sub(r"\s+,", ",", text)
    text = re.sub(r",\s+", ", ", text)
    text = re.sub(r"\s+", " ", text)
    upper = text.upper()

    state = ""
    state_idx = -1
    for match in _STATE_RE.finditer(upper):
        state = match.group(1)
        state_idx = match.start()

    zip_code = ""
    zip_match = _TRAILING_ZIP_RE.search(upper)
    if zip_match and state_idx != -1 and zip_match.start() > state_idx:
        zip_code = zip_match.group(1)

    if state_idx == -1:
        return USAddressParts(street=text.strip(), city="", state="", zip="")

    prefix = re.sub(r",\s*$", "", text[:state_idx]).strip()
    city = ""
    parts = [part.strip() for part in prefix.split(",") if part.strip()]
    if len(parts) >= 2:
        city = parts.pop()
        prefix = ", ".join(parts)
    else:
        tokens = prefix.split(" ")
        if len(tokens) >= 3 and _HOUSE_NUMBER_RE.match(tokens[0]):
            city = " ".join(tokens[-2:])
            prefix = " ".join(tokens[:-2])

    return USAddressParts(street=prefix.strip(), city=city, state=state, zip=zip_code)


def classify(query: str, viewport: BoundingBox | None = None) -> GeocodeQuery:
    """Build the :class:`GeocodeQuery` every geocoding stage receives."""
    is_us = is_likely_us(query)
    text = normalize_us_query(query) if is_us else normalize_intl_query(query)
    return GeocodeQuery(raw=query or "", text=text, is_us=is_us, viewport=viewport)
