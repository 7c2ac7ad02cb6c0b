"""
Directed Stake Constants

This module consolidates protocol constants and the environment-driven
logging configuration used throughout the codebase. Constants are
organized by category for easy reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_TO_FILE':                     'False',
    'LOG_INCLUDE_RPC_PAYLOADS':        'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_MAX_PAYLOAD_LENGTH = 320  # Truncates logged RPC payloads beyond this length
LOG_BACKUP_COUNT = 5


# ==================================================================================
# LEDGER PROTOCOL CONSTANTS
# ==================================================================================
# These mirror the on-chain program and the ledger's runtime. They are not
# tunables: changing them derives different addresses than the program does.
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
SECRET_KEY_LENGTH = 64  # 32-byte seed followed by the 32-byte public key

MAX_SEEDS = 16
MAX_SEED_LENGTH = 32
PDA_MARKER = b"ProgramDerivedAddress"

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"


# ==================================================================================
# DIRECTED STAKE PROGRAM
# ==================================================================================
DIRECTOR_SEED = b"director"
DIRECTOR_ACCOUNT_NAME = "Director"

DISCRIMINATOR_LENGTH = 8
DIRECTOR_ACCOUNT_SIZE = DISCRIMINATOR_LENGTH + PUBLIC_KEY_LENGTH + PUBLIC_KEY_LENGTH  # 72 bytes

IX_INIT_DIRECTOR = "init_director"
IX_SET_STAKE_TARGET = "set_stake_target"
IX_CLOSE_DIRECTOR = "close_director"


# ==================================================================================
# NETWORK DEFAULTS
# ==================================================================================
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_COMMITMENT = "confirmed"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_CONFIRM_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_TOKEN_DECIMALS = 9
DEFAULT_WALLET_ENV = "WALLET"

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


# ==================================================================================
# SNAPSHOT FORMAT
# ==================================================================================
SNAPSHOT_HEADER = ("wallet", "balance")
RECONCILED_HEADER = ("wallet", "validator", "amount")


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
