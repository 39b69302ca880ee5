"""
Transaction value types.

Signed and unsigned transactions are different types:

- `Transaction` is the mutable record a builder (or caller) populates.
- `SignedTransaction` is frozen and carries `signature` and `id`. It is
  produced only by `tx.sign.sign_transaction` (or parsed from the wire).

There is no "empty signature" sentinel on an unsigned transaction; going back
from signed to unsigned is an explicit `SignedTransaction.unsigned()` call.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Tuple, Union

from ..errors import EncodingError
from ..utils.bytes import b64url_encode

TagLike = Union["Tag", Tuple[Union[str, bytes], Union[str, bytes]]]

FORMAT_V1 = 1
FORMAT_V2 = 2


def _tag_part(value: Any, attr: str) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise EncodingError(f"tag {attr} must be bytes or str, got {type(value).__name__}", field=f"tags.{attr}")


@dataclass(frozen=True)
class Tag:
    """
    One name/value pair. Text is stored UTF-8 encoded; bytes are kept as-is.
    """

    name: bytes
    value: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _tag_part(self.name, "name"))
        object.__setattr__(self, "value", _tag_part(self.value, "value"))

    @classmethod
    def coerce(cls, tag: TagLike) -> "Tag":
        if isinstance(tag, Tag):
            return tag
        try:
            name, value = tag
        except (TypeError, ValueError) as e:
            raise EncodingError(f"tag must be a Tag or a (name, value) pair, got {tag!r}", field="tags") from e
        return cls(name, value)

    def decoded(self) -> Tuple[str, str]:
        """(name, value) as text; undecodable bytes are replaced."""
        return self.name.decode("utf-8", "replace"), self.value.decode("utf-8", "replace")


def coerce_tags(tags: Iterable[TagLike]) -> List[Tag]:
    return [Tag.coerce(t) for t in tags]


@dataclass
class Transaction:
    """
    Unsigned transaction fields.

    Fields:
      - format         : protocol version (1 or 2)
      - last_reference : anchor bytes (wire name `last_tx`)
      - owner          : raw RSA modulus of the signer (set when signing)
      - target         : recipient address bytes, may be empty
      - quantity       : amount transferred, may be zero
      - fee            : payment for inclusion (wire name `reward`)
      - data           : inline payload bytes
      - data_size      : declared payload length
      - data_root      : merkle commitment to the chunked payload (format 2)
      - tags           : ordered name/value pairs; order is signed
    """

    format: int = FORMAT_V2
    last_reference: bytes = b""
    owner: bytes = b""
    target: bytes = b""
    quantity: int = 0
    fee: int = 0
    data: bytes = field(default=b"", repr=False)
    data_size: int = 0
    data_root: bytes = b""
    tags: List[Tag] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.tags = coerce_tags(self.tags)

    def add_tag(self, name: Union[str, bytes], value: Union[str, bytes]) -> "Transaction":
        self.tags.append(Tag(name, value))
        return self


_FIELD_NAMES = tuple(f.name for f in fields(Transaction))


@dataclass(frozen=True)
class SignedTransaction:
    """
    Immutable signed transaction: every `Transaction` field plus `signature`
    and `id` (SHA-256 of the signature).

    `dataclasses.replace` on a signed transaction keeps the old signature, so
    the result fails verification; that is how tampering shows up.
    """

    format: int
    last_reference: bytes
    owner: bytes
    target: bytes
    quantity: int
    fee: int
    data: bytes = field(repr=False)
    data_size: int
    data_root: bytes
    tags: Tuple[Tag, ...]
    signature: bytes = field(repr=False)
    id: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", tuple(coerce_tags(self.tags)))

    @classmethod
    def from_unsigned(cls, tx: Transaction, *, signature: bytes, id: bytes) -> "SignedTransaction":
        values: Dict[str, Any] = {name: getattr(tx, name) for name in _FIELD_NAMES}
        return cls(**values, signature=bytes(signature), id=bytes(id))

    @property
    def id_b64(self) -> str:
        return b64url_encode(self.id)

    def unsigned(self) -> Transaction:
        """Drop signature and id, returning a fresh mutable copy for re-signing."""
        values: Dict[str, Any] = {name: getattr(self, name) for name in _FIELD_NAMES}
        values["tags"] = list(self.tags)
        return Transaction(**values)


AnyTransaction = Union[Transaction, SignedTransaction]


__all__ = [
    "FORMAT_V1",
    "FORMAT_V2",
    "Tag",
    "TagLike",
    "Transaction",
    "SignedTransaction",
    "AnyTransaction",
    "coerce_tags",
]
