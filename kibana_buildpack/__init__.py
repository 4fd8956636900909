"""Kibana buildpack — supply and finalize for Cloud Foundry."""

__version__ = "0.1.0"
