"""
Directed Stake Program Interface

Account layout, instruction builders and rejection translation for the
on-chain directed stake program.
"""

from .layout import (
    DIRECTOR_DISCRIMINATOR,
    Director,
    DirectorRecord,
    account_discriminator,
    instruction_discriminator,
)
from .instructions import (
    SYSTEM_PROGRAM,
    AccountMeta,
    Instruction,
    close_director,
    init_director,
    set_stake_target,
)
from .errors import translate_rejection

__all__ = [
    "DIRECTOR_DISCRIMINATOR",
    "Director",
    "DirectorRecord",
    "account_discriminator",
    "instruction_discriminator",
    "SYSTEM_PROGRAM",
    "AccountMeta",
    "Instruction",
    "close_director",
    "init_director",
    "set_stake_target",
    "translate_rejection",
]
