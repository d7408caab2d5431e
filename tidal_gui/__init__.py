"""TidalCycles GUI desktop launcher."""
