"""Job records, catalog, and the execution controller."""
