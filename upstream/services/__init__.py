"""Storage capabilities the entities are built on."""
