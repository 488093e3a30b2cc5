# Common utilities
from hcsclient.common.crypto import KeyUtils as KeyUtils
from hcsclient.common.logging_utils import setup_logger as setup_logger
from hcsclient.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "KeyUtils", "setup_logger"]
