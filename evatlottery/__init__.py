"""Receipt-scanning lottery: VAT receipt QR codes redeemed for instant draws."""

__version__ = "0.1.0"
