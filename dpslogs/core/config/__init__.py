"""
Configuration subsystem.

Static configuration is loaded from environment variables (with .env
support) when this package is imported.

Usage
-----
```python
from dpslogs.core.config import Config

if Config.is_production():
    ...
```
"""

from dpslogs.core.config.config import Config, Environment

__all__ = [
    "Config",
    "Environment",
]
