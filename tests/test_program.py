"""
Tests for the Director account layout, instruction builders and
rejection translation.
"""

import hashlib

import pytest

from directed_stake.constants import DIRECTOR_ACCOUNT_SIZE
from directed_stake.crypto import find_director_address
from directed_stake.exceptions import (
    AccountDecodeError,
    AuthorityMismatchError,
    DirectorAlreadyExistsError,
    DirectorNotFoundError,
    TransactionRejectedError,
)
from directed_stake.program import (
    DIRECTOR_DISCRIMINATOR,
    SYSTEM_PROGRAM,
    Director,
    close_director,
    init_director,
    instruction_discriminator,
    set_stake_target,
    translate_rejection,
)

from conftest import make_key


class TestDirectorLayout:

    def test_discriminator_is_anchor_account_hash(self):
        assert DIRECTOR_DISCRIMINATOR == hashlib.sha256(b"account:Director").digest()[:8]

    def test_encode_layout(self):
        authority, target = make_key("auth"), make_key("target")
        data = Director(authority, target).encode()
        assert len(data) == DIRECTOR_ACCOUNT_SIZE
        assert data[8:40] == authority.to_bytes()
        assert data[40:72] == target.to_bytes()

    def test_decode(self):
        authority, target = make_key("auth"), make_key("target")
        director = Director.decode(Director(authority, target).encode())
        assert director.authority == authority
        assert director.stake_target == target
        assert director.is_active

    def test_zero_target_decodes_as_absent(self):
        director = Director.decode(DIRECTOR_DISCRIMINATOR + make_key("auth").to_bytes() + bytes(32))
        assert director.stake_target is None
        assert not director.is_active

    def test_short_data_rejected(self):
        with pytest.raises(AccountDecodeError):
            Director.decode(DIRECTOR_DISCRIMINATOR + bytes(10))

    def test_wrong_discriminator_rejected(self):
        with pytest.raises(AccountDecodeError):
            Director.decode(bytes(DIRECTOR_ACCOUNT_SIZE))


class TestInstructions:

    def test_init_director_accounts(self, program_id):
        authority, payer = make_key("auth"), make_key("payer")
        ix = init_director(program_id, authority, payer)

        assert ix.program_id == program_id
        assert ix.data == hashlib.sha256(b"global:init_director").digest()[:8]
        assert ix.name == "init_director"
        keys = [m.pubkey for m in ix.accounts]
        assert keys == [find_director_address(authority, program_id), authority, payer, SYSTEM_PROGRAM]
        assert ix.accounts[0].is_writable and not ix.accounts[0].is_signer
        assert ix.accounts[1].is_signer
        assert ix.accounts[2].is_signer and ix.accounts[2].is_writable

    def test_set_stake_target_accounts(self, program_id):
        authority, target = make_key("auth"), make_key("target")
        ix = set_stake_target(program_id, authority, target)

        assert ix.data == instruction_discriminator("set_stake_target")
        assert [m.pubkey for m in ix.accounts] == [
            find_director_address(authority, program_id), authority, target,
        ]
        assert not ix.accounts[2].is_writable

    def test_close_director_accounts(self, program_id):
        authority, destination = make_key("auth"), make_key("dest")
        ix = close_director(program_id, authority, destination)

        assert ix.name == "close_director"
        assert ix.accounts[2].pubkey == destination
        assert ix.accounts[2].is_writable


def rejected(index, detail, logs=None):
    return TransactionRejectedError(
        "Transaction simulation failed",
        err={"InstructionError": [index, detail]},
        logs=logs,
    )


class TestTranslateRejection:

    @pytest.fixture
    def init_and_set(self, program_id):
        authority = make_key("auth")
        return [
            init_director(program_id, authority, authority),
            set_stake_target(program_id, authority, make_key("target")),
        ]

    def test_init_account_in_use(self, init_and_set):
        error = translate_rejection(rejected(0, {"Custom": 0}), init_and_set)
        assert isinstance(error, DirectorAlreadyExistsError)

    def test_init_already_in_use_log(self, init_and_set):
        logs = ["Allocate: account Address { address: X, base: None } already in use"]
        error = translate_rejection(rejected(0, {"Custom": 1}, logs), init_and_set)
        assert isinstance(error, DirectorAlreadyExistsError)
        assert error.logs == logs

    def test_not_initialized(self, program_id):
        ixs = [close_director(program_id, make_key("auth"), make_key("dest"))]
        error = translate_rejection(rejected(0, {"Custom": 3012}), ixs)
        assert isinstance(error, DirectorNotFoundError)

    @pytest.mark.parametrize("code", [2001, 2006])
    def test_authority_constraints(self, init_and_set, code):
        error = translate_rejection(rejected(1, {"Custom": code}), init_and_set)
        assert isinstance(error, AuthorityMismatchError)

    def test_custom_zero_on_set_is_not_a_conflict(self, init_and_set):
        original = rejected(1, {"Custom": 0})
        assert translate_rejection(original, init_and_set) is original

    def test_unrecognised_error_passes_through(self, init_and_set):
        original = TransactionRejectedError("Blockhash not found", err="BlockhashNotFound")
        assert translate_rejection(original, init_and_set) is original

    def test_typed_error_passes_through(self, init_and_set):
        original = DirectorNotFoundError("already typed", err={"InstructionError": [0, {"Custom": 0}]})
        assert translate_rejection(original, init_and_set) is original

    def test_translated_error_keeps_raw_error(self, init_and_set):
        original = rejected(0, {"Custom": 0})
        error = translate_rejection(original, init_and_set)
        assert error.err == original.err
        assert "init_director" in str(error)
