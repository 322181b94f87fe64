"""
Configuration subsystem for the player ledger.

Static configuration is loaded from environment variables (with ``.env``
support) when this package is first imported.

Usage
-----
```python
from player_ledger.core.config import Config

db_url = Config.DATABASE_URL
if Config.is_production():
    ...
```
"""

from .config import Config, Environment

__all__ = ["Config", "Environment"]
