"""CollarTrack: ingestion and read-back API for dog collar telemetry."""

__version__ = "0.1.0"
