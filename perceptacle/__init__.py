"""Perceptacle: map exploration backend with layered geocoding, markers and tips."""
