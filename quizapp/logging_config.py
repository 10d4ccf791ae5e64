# quizapp/logging_config.py
import logging
import logging.config

_configured = False


def build_logging_config(level: str = 'INFO') -> dict:
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            },
        },
        'handlers': {
            'console': {
                'level': level,
                'class': 'logging.StreamHandler',
                'formatter': 'standard',
            },
        },
        'loggers': {
            'quizapp': {
                'handlers': ['console'],
                'level': level,
                'propagate': False,
            },
        },
    }


def setup_logging(level: str = 'INFO', force: bool = False) -> None:
    """Apply the logging config once per process."""
    global _configured
    if _configured and not force:
        return
    logging.config.dictConfig(build_logging_config(level))
    _configured = True
