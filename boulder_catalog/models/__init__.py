from .sector import Sector
from .boulder import Boulder

__all__ = ["Sector", "Boulder"]
