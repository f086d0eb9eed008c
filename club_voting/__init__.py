"""Club media voting backend."""
