"""soapkit: reference catalog cache and abbreviation expansion for clinical note forms."""

__version__ = "0.1.0"
