"""Built-in CLI sub-commands: lookups, cache management and configuration."""
