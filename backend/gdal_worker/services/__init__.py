"""Import pipeline stages: ingestion, SRS detection, command assembly."""
