from dotenv import load_dotenv

from .configuration import ServerConfiguration, get_configuration
from .loader import get_bool_env, get_int_env, get_str_env

# Load environment variables
load_dotenv()

__all__ = [
    "ServerConfiguration",
    "get_configuration",
    "get_bool_env",
    "get_int_env",
    "get_str_env",
]
