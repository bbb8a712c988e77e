# Import models so Base metadata is aware of them
from .store import KeyValueEntry  # noqa: F401
