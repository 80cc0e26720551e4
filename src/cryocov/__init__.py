import importlib
import logging.config
import os
import pkgutil
from datetime import datetime
from pathlib import Path

import confuse

import cryocov
from cryocov.exceptions import handle_exception

# version in maj.min.bld format
__version__ = "0.1.0"


# Setup `confuse` config
config = confuse.Configuration("cryocov", __name__)

# Ensure the log_dir exists.
log_dir_path = Path(config["logging"]["log_dir"].get(confuse.Filename(cwd=".")))
log_dir_path.mkdir(parents=True, exist_ok=True)
# Reassign the evaluated log_dir back into the config so it displays well.
config["logging"]["log_dir"] = log_dir_path.as_posix()

# log output file prefix
log_prefix = config["logging"]["log_prefix"].get(str)

# DEBUG, INFO, etc.
_logging_level_names = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
console_level = config["logging"]["console_level"].as_choice(_logging_level_names)
log_file_level = config["logging"]["log_file_level"].as_choice(_logging_level_names)

logging.config.fileConfig(
    os.path.join(os.path.dirname(__file__), "logging.conf"),
    defaults={
        "console_level": console_level,
        "log_file_level": log_file_level,
        "log_dir": log_dir_path.as_posix(),
        "log_prefix": log_prefix,
        "dt_stamp": datetime.now().strftime("%Y-%m-%dT%H-%M-%S.%f"),
    },
    disable_existing_loggers=False,
)

logging.debug(f"cryocov configuration directory is {config.config_dir()}")
logging.debug(f"Resolved config_default.yaml:\n{config.dump()}\n")

# Write unhandled exceptions with environment details to 'cryocov.err.log'.
if config["logging"]["log_exceptions"].get(int):
    import sys

    sys.excepthook = handle_exception

# Collect set of all module names in package
_modules = set(item[1] for item in pkgutil.iter_modules(cryocov.__path__))

__all__ = []
for modname in _modules:
    __all__.append(modname)


# Dynamically load and return attributes
def __getattr__(attr):
    if attr in _modules:
        return importlib.import_module(f"cryocov.{attr}")
    else:
        raise AttributeError(f"module `{__name__}` has no attribute `{attr}`.")
