"""Desktop front end for FHIR-backed clinical records."""

__version__ = "0.1.0"
