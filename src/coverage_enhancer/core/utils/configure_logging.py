import logging
import sys
from tqdm import tqdm

# Levels accepted on the command line in addition to the stdlib names.
CLI_LEVELS = {
    "disabled": logging.CRITICAL + 10,
    "debug": logging.DEBUG,
    "log": logging.INFO,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LogWithTqdm(logging.Handler):
    """
    A custom logging handler that redirects logging output to `tqdm.write()`,
    ensuring that log messages do not interfere with the progress bar display.
    """
    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except Exception:
            self.handleError(record)


def resolve_level(level, default=logging.INFO) -> int:
    """Maps a CLI or stdlib level name (or a number) to a logging level."""
    if isinstance(level, int):
        return level
    if not level:
        return default
    name = str(level).strip()
    if name.lower() in CLI_LEVELS:
        return CLI_LEVELS[name.lower()]
    resolved = getattr(logging, name.upper(), None)
    return resolved if isinstance(resolved, int) else default


def configure_logger(general_level='INFO', module_specific_levels=None, silenced_loggers=None):
    """
    Configures the root logger and specific module loggers with a
    TQDM-friendly handler.
    """
    tqdm_aware_handler = LogWithTqdm()
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"
    )
    tqdm_aware_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_level(general_level))

    root_logger.handlers.clear()
    root_logger.addHandler(tqdm_aware_handler)

    if module_specific_levels:
        for name, level in module_specific_levels.items():
            logging.getLogger(name).setLevel(resolve_level(level))

    # Muzzle noisy loggers by setting their level high.
    if silenced_loggers:
        for name, level in silenced_loggers.items():
            logging.getLogger(name).setLevel(resolve_level(level, logging.CRITICAL))
