import logging
from logging.handlers import RotatingFileHandler
import os


def setup_logger(name, log_dir='logs', level='INFO', to_file=True):
    """Configure and return a logger instance"""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Reconfiguring (e.g. one app per test) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if to_file:
        os.makedirs(log_dir, exist_ok=True)

        # File handler
        file_handler = RotatingFileHandler(os.path.join(log_dir, 'app.log'),
                                           maxBytes=1024 * 1024, backupCount=10)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        '%(levelname)s: %(name)s: %(message)s'
    ))
    logger.addHandler(console_handler)

    return logger
