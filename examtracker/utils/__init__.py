from .db import get_db, close_db, init_db
from .logger import setup_logger

__all__ = [
    'get_db',
    'close_db',
    'init_db',
    'setup_logger'
]
