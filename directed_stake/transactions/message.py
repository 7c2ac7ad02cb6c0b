"""
Directed Stake Transaction Encoding

Legacy ledger transaction format:

    transaction = compact_array(signature[64]) || message
    message     = header[3]
                  || compact_array(account_key[32])
                  || recent_blockhash[32]
                  || compact_array(compiled_instruction)

Account keys are ordered writable signers, read-only signers, writable
non-signers, read-only non-signers, with the fee payer always first.
The header counts let a reader recover each key's privileges.
"""

import base64
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import base58

from ..constants import PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH
from ..crypto.keys import Keypair, PublicKey
from ..program.instructions import AccountMeta, Instruction


def encode_length(value: int) -> bytes:
    """
    Encode a compact-u16 length prefix (7 bits per byte, low bits first).

    Args:
        value: Length in 0..65535

    Returns:
        1 to 3 encoded bytes
    """
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Compact length out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_length(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a compact-u16 prefix, returning (value, bytes_consumed)."""
    value = 0
    for size in range(3):
        if offset + size >= len(data):
            raise ValueError("Truncated compact length")
        byte = data[offset + size]
        value |= (byte & 0x7F) << (7 * size)
        if not byte & 0x80:
            return value, size + 1
    raise ValueError("Compact length longer than 3 bytes")


@dataclass(frozen=True)
class MessageHeader:
    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int


@dataclass(frozen=True)
class CompiledInstruction:
    program_id_index: int
    accounts: Tuple[int, ...]
    data: bytes


@dataclass
class Message:
    header: MessageHeader
    account_keys: List[PublicKey]
    recent_blockhash: bytes
    instructions: List[CompiledInstruction]

    @classmethod
    def compile(
        cls,
        instructions: Sequence[Instruction],
        fee_payer: PublicKey,
        recent_blockhash: bytes,
    ) -> "Message":
        """
        Compile instructions into a message.

        Privileges of an account used by several instructions are merged
        (signer if any use signs, writable if any use writes).
        """
        if len(recent_blockhash) != PUBLIC_KEY_LENGTH:
            raise ValueError(f"Blockhash must be 32 bytes, got {len(recent_blockhash)}")

        # Insertion order is kept within each privilege class
        privileges: Dict[PublicKey, List[bool]] = {fee_payer: [True, True]}
        for ix in instructions:
            for meta in ix.accounts:
                entry = privileges.setdefault(meta.pubkey, [False, False])
                entry[0] = entry[0] or meta.is_signer
                entry[1] = entry[1] or meta.is_writable
            privileges.setdefault(ix.program_id, [False, False])

        def bucket(signer: bool, writable: bool) -> List[PublicKey]:
            return [
                key for key, (s, w) in privileges.items()
                if key != fee_payer and s == signer and w == writable
            ]

        writable_signers = [fee_payer] + bucket(True, True)
        readonly_signers = bucket(True, False)
        writable_unsigned = bucket(False, True)
        readonly_unsigned = bucket(False, False)

        account_keys = writable_signers + readonly_signers + writable_unsigned + readonly_unsigned
        index = {key: i for i, key in enumerate(account_keys)}

        compiled = [
            CompiledInstruction(
                program_id_index=index[ix.program_id],
                accounts=tuple(index[meta.pubkey] for meta in ix.accounts),
                data=bytes(ix.data),
            )
            for ix in instructions
        ]

        header = MessageHeader(
            num_required_signatures=len(writable_signers) + len(readonly_signers),
            num_readonly_signed_accounts=len(readonly_signers),
            num_readonly_unsigned_accounts=len(readonly_unsigned),
        )
        return cls(header, account_keys, bytes(recent_blockhash), compiled)

    @property
    def signer_keys(self) -> List[PublicKey]:
        return self.account_keys[:self.header.num_required_signatures]

    def is_signer(self, index: int) -> bool:
        return index < self.header.num_required_signatures

    def is_writable(self, index: int) -> bool:
        h = self.header
        if index < h.num_required_signatures:
            return index < h.num_required_signatures - h.num_readonly_signed_accounts
        return index < len(self.account_keys) - h.num_readonly_unsigned_accounts

    def decompile(self) -> List[Instruction]:
        """Rebuild the instructions with their account privileges."""
        return [
            Instruction(
                program_id=self.account_keys[ci.program_id_index],
                accounts=[
                    AccountMeta(self.account_keys[i], self.is_signer(i), self.is_writable(i))
                    for i in ci.accounts
                ],
                data=ci.data,
            )
            for ci in self.instructions
        ]

    def serialize(self) -> bytes:
        h = self.header
        out = bytearray([
            h.num_required_signatures,
            h.num_readonly_signed_accounts,
            h.num_readonly_unsigned_accounts,
        ])
        out += encode_length(len(self.account_keys))
        for key in self.account_keys:
            out += key.to_bytes()
        out += self.recent_blockhash
        out += encode_length(len(self.instructions))
        for ci in self.instructions:
            out.append(ci.program_id_index)
            out += encode_length(len(ci.accounts))
            out += bytes(ci.accounts)
            out += encode_length(len(ci.data))
            out += ci.data
        return bytes(out)

    @classmethod
    def deserialize(cls, data: bytes) -> "Message":
        if len(data) < 3:
            raise ValueError("Message too short")
        header = MessageHeader(data[0], data[1], data[2])
        offset = 3

        count, size = decode_length(data, offset)
        offset += size
        keys = []
        for _ in range(count):
            keys.append(PublicKey(data[offset:offset + PUBLIC_KEY_LENGTH]))
            offset += PUBLIC_KEY_LENGTH

        blockhash = data[offset:offset + PUBLIC_KEY_LENGTH]
        offset += PUBLIC_KEY_LENGTH

        count, size = decode_length(data, offset)
        offset += size
        instructions = []
        for _ in range(count):
            program_index = data[offset]
            offset += 1
            n, size = decode_length(data, offset)
            offset += size
            accounts = tuple(data[offset:offset + n])
            offset += n
            n, size = decode_length(data, offset)
            offset += size
            ix_data = bytes(data[offset:offset + n])
            offset += n
            instructions.append(CompiledInstruction(program_index, accounts, ix_data))

        if offset != len(data):
            raise ValueError(f"Trailing bytes after message: {len(data) - offset}")
        return cls(header, keys, bytes(blockhash), instructions)


@dataclass
class Transaction:
    """
    A message plus one signature per required signer, in key order.
    """
    message: Message
    signatures: List[bytes] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        instructions: Sequence[Instruction],
        fee_payer: Keypair,
        recent_blockhash: bytes,
        signers: Sequence[Keypair] = (),
    ) -> "Transaction":
        """Compile and sign in one step; the fee payer always signs."""
        message = Message.compile(instructions, fee_payer.public_key, recent_blockhash)
        tx = cls(message)
        tx.sign([fee_payer, *signers])
        return tx

    def sign(self, signers: Sequence[Keypair]) -> None:
        """
        Sign the message with every required signer.

        Raises:
            ValueError: If a required signer is missing
        """
        by_key = {kp.public_key: kp for kp in signers}
        payload = self.message.serialize()
        signatures = []
        for key in self.message.signer_keys:
            keypair = by_key.get(key)
            if keypair is None:
                raise ValueError(f"Missing signature for {key}")
            signatures.append(keypair.sign(payload))
        self.signatures = signatures

    @property
    def signature(self) -> str:
        """Transaction id: base58 of the fee payer's signature."""
        if not self.signatures:
            raise ValueError("Transaction is not signed")
        return base58.b58encode(self.signatures[0]).decode("ascii")

    def serialize(self) -> bytes:
        out = bytearray(encode_length(len(self.signatures)))
        for sig in self.signatures:
            out += sig
        out += self.message.serialize()
        return bytes(out)

    def to_base64(self) -> str:
        return base64.b64encode(self.serialize()).decode("ascii")

    @classmethod
    def deserialize(cls, data: bytes) -> "Transaction":
        count, offset = decode_length(data, 0)
        signatures = []
        for _ in range(count):
            signatures.append(bytes(data[offset:offset + SIGNATURE_LENGTH]))
            offset += SIGNATURE_LENGTH
        return cls(Message.deserialize(data[offset:]), signatures)
