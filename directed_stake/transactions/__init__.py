from .message import (
    CompiledInstruction,
    Message,
    MessageHeader,
    Transaction,
    decode_length,
    encode_length,
)

__all__ = [
    "CompiledInstruction",
    "Message",
    "MessageHeader",
    "Transaction",
    "decode_length",
    "encode_length",
]
