"""
Chunk planning and the `data_root` commitment.

A payload is split into fixed-size blocks (the last one may be short). Chunk
`i` starts at byte `i * block_size`, so a chunk's position is derivable from
its index and uploads may complete in any order.

The commitment is a binary merkle tree over the chunks, with every node
carrying the end offset of its byte range:

    leaf(c)      id = sha256( sha256(sha256(c)) || sha256(note(end)) )
    branch(l, r) id = sha256( sha256(l.id) || sha256(r.id) || sha256(note(l.end)) )

`note(n)` is `n` as a 32-byte big-endian integer. A node without a sibling
is promoted to the next layer unchanged. The root id is the `data_root`.

A chunk's `data_path` is the chain of branch proofs from the root down
(`l.id || r.id || note(l.end)`) followed by its leaf proof
(`sha256(c) || note(end)`). `validate_path` walks it back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from ..utils.hash import sha256

BytesLike = Union[bytes, bytearray, memoryview]

HASH_SIZE = 32
NOTE_SIZE = 32


def _note(n: int) -> bytes:
    return n.to_bytes(NOTE_SIZE, "big")


def _to_view(data: BytesLike) -> memoryview:
    if isinstance(data, memoryview):
        return data.toreadonly()
    if isinstance(data, (bytes, bytearray)):
        return memoryview(data).toreadonly()
    raise TypeError(f"payload must be bytes-like, got {type(data)!r}")


@dataclass(frozen=True)
class _Node:
    id: bytes
    end: int
    # leaf: data hash; branch: children
    data_hash: Optional[bytes] = None
    left: Optional["_Node"] = None
    right: Optional["_Node"] = None


def _leaf(chunk: memoryview, end: int) -> _Node:
    data_hash = sha256(chunk)
    node_id = sha256(sha256(data_hash) + sha256(_note(end)))
    return _Node(id=node_id, end=end, data_hash=data_hash)


def _branch(left: _Node, right: _Node) -> _Node:
    node_id = sha256(sha256(left.id) + sha256(right.id) + sha256(_note(left.end)))
    return _Node(id=node_id, end=right.end, left=left, right=right)


def _build_root(leaves: List[_Node]) -> _Node:
    layer = leaves
    while len(layer) > 1:
        nxt: List[_Node] = []
        for i in range(0, len(layer), 2):
            if i + 1 < len(layer):
                nxt.append(_branch(layer[i], layer[i + 1]))
            else:
                nxt.append(layer[i])
        layer = nxt
    return layer[0]


def _collect_paths(node: _Node, prefix: bytes, out: List[bytes]) -> None:
    # Depth-first, left to right, so `out` ends up in chunk order.
    stack: List[Tuple[_Node, bytes]] = [(node, prefix)]
    while stack:
        cur, path = stack.pop()
        if cur.data_hash is not None:
            out.append(path + cur.data_hash + _note(cur.end))
            continue
        assert cur.left is not None and cur.right is not None
        proof = path + cur.left.id + cur.right.id + _note(cur.left.end)
        stack.append((cur.right, proof))
        stack.append((cur.left, proof))


def chunk_ranges(size: int, block_size: int) -> Iterator[Tuple[int, int]]:
    """
    Yield `(start, end)` byte ranges for a payload of `size` bytes.

    Empty payload -> no ranges.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    for start in range(0, size, block_size):
        yield start, min(start + block_size, size)


@dataclass(frozen=True)
class Chunk:
    """
    One slice of a payload, ready for `POST /chunk`.

    `data` is a read-only view into the caller's payload; nothing is copied
    until the chunk is encoded for upload.
    """

    index: int
    offset: int
    data: memoryview
    data_path: bytes

    @property
    def end(self) -> int:
        return self.offset + len(self.data)

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ChunkedPayload:
    data_root: bytes
    data_size: int
    block_size: int
    chunks: Tuple[Chunk, ...]

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks)


def chunk_payload(data: BytesLike, *, block_size: int) -> ChunkedPayload:
    """
    Split `data` into fixed-size chunks and compute the data root and every
    chunk's inclusion proof.

    Empty payload -> empty data root and no chunks.
    """
    view = _to_view(data)
    ranges = list(chunk_ranges(len(view), block_size))
    if not ranges:
        return ChunkedPayload(data_root=b"", data_size=0, block_size=block_size, chunks=())

    leaves = [_leaf(view[start:end], end) for start, end in ranges]
    root = _build_root(leaves)
    paths: List[bytes] = []
    _collect_paths(root, b"", paths)

    chunks = tuple(
        Chunk(index=i, offset=start, data=view[start:end], data_path=paths[i])
        for i, (start, end) in enumerate(ranges)
    )
    return ChunkedPayload(
        data_root=root.id, data_size=len(view), block_size=block_size, chunks=chunks
    )


def compute_data_root(data: BytesLike, *, block_size: int) -> bytes:
    """Data root of `data`; `b""` for an empty payload."""
    view = _to_view(data)
    leaves = [_leaf(view[start:end], end) for start, end in chunk_ranges(len(view), block_size)]
    if not leaves:
        return b""
    return _build_root(leaves).id


def validate_path(
    data_root: bytes, offset: int, data_size: int, path: bytes
) -> Optional[Tuple[int, int]]:
    """
    Check that `path` proves a chunk containing byte `offset` under `data_root`.

    Returns the chunk's `(start, end)` range, or None if the proof is invalid.
    Offsets outside `[0, data_size)` are clamped to the nearest byte.
    """
    if data_size <= 0:
        return None
    dest = min(max(offset, 0), data_size - 1)
    node_id = bytes(data_root)
    left_bound, right_bound = 0, data_size
    rest = bytes(path)

    while True:
        if len(rest) == HASH_SIZE + NOTE_SIZE:
            data_hash, end_note = rest[:HASH_SIZE], rest[HASH_SIZE:]
            if sha256(sha256(data_hash) + sha256(end_note)) != node_id:
                return None
            return left_bound, right_bound
        if len(rest) < 2 * HASH_SIZE + NOTE_SIZE:
            return None
        left = rest[:HASH_SIZE]
        right = rest[HASH_SIZE : 2 * HASH_SIZE]
        boundary_note = rest[2 * HASH_SIZE : 2 * HASH_SIZE + NOTE_SIZE]
        rest = rest[2 * HASH_SIZE + NOTE_SIZE :]
        if sha256(sha256(left) + sha256(right) + sha256(boundary_note)) != node_id:
            return None
        boundary = int.from_bytes(boundary_note, "big")
        if dest < boundary:
            node_id, right_bound = left, min(right_bound, boundary)
        else:
            node_id, left_bound = right, max(left_bound, boundary)


__all__ = [
    "Chunk",
    "ChunkedPayload",
    "chunk_ranges",
    "chunk_payload",
    "compute_data_root",
    "validate_path",
]
