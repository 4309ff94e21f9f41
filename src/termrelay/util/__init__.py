"""Provider, stream parsing and configuration helpers."""
