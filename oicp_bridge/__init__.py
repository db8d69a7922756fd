"""Adapter between the WWCP roaming model and Hubject's OICP protocol."""

__version__ = "0.1.0"
