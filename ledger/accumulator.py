"""
Merkle Accumulator
Fixed-depth Merkle tree over fixed-size leaves with tagged authentication
paths, native membership verification and the membership gadget
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from primitives.field import SerializationError, from_bytes_le, to_bytes_le
from primitives.pedersen import HashFamily, HashFamilyGadget
from zk.constraint_system import ConstraintSystem, ConstraintSynthesizer, SynthesisError
from zk.gadgets import AllocVar, Allocator, Boolean, FpVar, UInt8

from .parameters import Parameters, ParametersVar

logger = logging.getLogger(__name__)

DIGEST_BYTES = 32
_NODE_BYTES = 1 + DIGEST_BYTES
_LEFT_TAG = 0
_RIGHT_TAG = 1

# ============================================================================
# AUTHENTICATION PATHS
# ============================================================================


@dataclass(frozen=True)
class Left:
    """The sibling is the left input of the parent compression"""
    digest: int


@dataclass(frozen=True)
class Right:
    """The sibling is the right input of the parent compression"""
    digest: int


PathNode = Union[Left, Right]


@dataclass(frozen=True)
class AuthenticationPath:
    """Sibling digests ordered from the leaf level up to the root"""
    nodes: Tuple[PathNode, ...]

    @property
    def depth(self) -> int:
        return len(self.nodes)

    @property
    def leaf_index(self) -> int:
        return sum(1 << level for level, node in enumerate(self.nodes) if isinstance(node, Left))

    def compute_root(self, hash_family: HashFamily, leaf: bytes) -> int:
        current = hash_family.hash(leaf)
        for node in self.nodes:
            if isinstance(node, Left):
                current = hash_family.compress(node.digest, current)
            else:
                current = hash_family.compress(current, node.digest)
        return current

    def verify(self, hash_family: HashFamily, root: int, leaf: bytes) -> bool:
        return self.compute_root(hash_family, leaf) == root

    def to_bytes(self) -> bytes:
        return b"".join(
            bytes([_LEFT_TAG if isinstance(node, Left) else _RIGHT_TAG]) + to_bytes_le(node.digest)
            for node in self.nodes
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> 'AuthenticationPath':
        if len(data) % _NODE_BYTES:
            raise SerializationError(f"Path encoding length {len(data)} is not a multiple of {_NODE_BYTES}")
        nodes = []
        for offset in range(0, len(data), _NODE_BYTES):
            tag = data[offset]
            digest = from_bytes_le(data[offset + 1:offset + _NODE_BYTES])
            if tag == _LEFT_TAG:
                nodes.append(Left(digest))
            elif tag == _RIGHT_TAG:
                nodes.append(Right(digest))
            else:
                raise SerializationError(f"Unknown path direction tag {tag}")
        return cls(tuple(nodes))


def verify_membership(hash_family: HashFamily, root: int, leaf: bytes,
                      path: AuthenticationPath, depth: Optional[int] = None) -> bool:
    """Native membership check; never raises on a wrong path"""
    if depth is not None and path.depth != depth:
        logger.debug(f"Path depth {path.depth} does not match deployment depth {depth}")
        return False
    return path.verify(hash_family, root, leaf)


# ============================================================================
# MERKLE TREE
# ============================================================================


class MerkleTree:
    """Dense Merkle tree padded to ``2**depth`` leaves with a zero leaf"""

    def __init__(self, hash_family: HashFamily, leaves: Sequence[bytes],
                 depth: Optional[int] = None, workers: int = 1):
        if not leaves:
            raise ValueError("A Merkle tree needs at least one leaf")
        self.leaf_size = len(leaves[0])
        if any(len(leaf) != self.leaf_size for leaf in leaves):
            raise ValueError("All leaves must have the same size")
        if depth is None:
            depth = max(1, (len(leaves) - 1).bit_length())
        if len(leaves) > (1 << depth):
            raise ValueError(f"{len(leaves)} leaves do not fit in a tree of depth {depth}")

        self.hash_family = hash_family
        self.depth = depth
        self.workers = workers
        self.empty_leaf = bytes(self.leaf_size)
        self.leaves: List[bytes] = list(leaves) + [self.empty_leaf] * ((1 << depth) - len(leaves))
        self.levels: List[List[int]] = []
        self._build()

    def _build(self):
        logger.info(f"Building Merkle tree of depth {self.depth} over {len(self.leaves)} leaves "
                    f"({self.workers} worker(s))")
        if self.workers > 1:
            with ProcessPoolExecutor(max_workers=self.workers) as executor:
                self._build_levels(executor)
        else:
            self._build_levels(None)

    def _build_levels(self, executor: Optional[ProcessPoolExecutor]):
        if executor is None:
            level = [self.hash_family.hash(leaf) for leaf in self.leaves]
        else:
            chunksize = max(1, len(self.leaves) // (4 * self.workers))
            level = list(executor.map(self.hash_family.hash, self.leaves, chunksize=chunksize))
        self.levels = [level]
        for height in range(self.depth):
            lefts, rights = level[0::2], level[1::2]
            if executor is None:
                level = [self.hash_family.compress(l, r) for l, r in zip(lefts, rights)]
            else:
                chunksize = max(1, len(lefts) // (4 * self.workers))
                level = list(executor.map(self.hash_family.compress, lefts, rights, chunksize=chunksize))
            self.levels.append(level)
            logger.debug(f"Level {height + 1}: {len(level)} node(s)")

    @property
    def root(self) -> int:
        return self.levels[-1][0]

    def _check_index(self, index: int):
        if index < 0 or index >= (1 << self.depth):
            raise IndexError(f"Index {index} out of bounds for depth {self.depth}")

    def generate_proof(self, index: int) -> AuthenticationPath:
        self._check_index(index)
        nodes = []
        for level in self.levels[:-1]:
            sibling = level[index ^ 1]
            nodes.append(Left(sibling) if index & 1 else Right(sibling))
            index >>= 1
        return AuthenticationPath(tuple(nodes))

    def update(self, index: int, leaf: bytes):
        """Replace one leaf and recompute its path to the root"""
        self._check_index(index)
        if len(leaf) != self.leaf_size:
            raise ValueError(f"Leaf must be {self.leaf_size} bytes")
        self.leaves[index] = leaf
        self.levels[0][index] = self.hash_family.hash(leaf)
        for height in range(1, self.depth + 1):
            index >>= 1
            below = self.levels[height - 1]
            self.levels[height][index] = self.hash_family.compress(below[2 * index], below[2 * index + 1])


# ============================================================================
# MEMBERSHIP GADGET
# ============================================================================


class AuthenticationPathVar(AllocVar):
    """Per level: a Boolean set when the sibling is on the left, and the sibling digest"""

    def __init__(self, nodes: List[Tuple[Boolean, FpVar]]):
        self.nodes = nodes

    @property
    def depth(self) -> int:
        return len(self.nodes)

    @classmethod
    def new_variable(cls, cs, path: AuthenticationPath, allocator: Allocator) -> 'AuthenticationPathVar':
        return cls([
            (Boolean.new_variable(cs, isinstance(node, Left), allocator),
             FpVar.new_variable(cs, node.digest, allocator))
            for node in path.nodes
        ])

    def compute_root(self, hash_gadget: HashFamilyGadget, leaf: Sequence[UInt8]) -> FpVar:
        current = hash_gadget.hash(leaf)
        for sibling_is_left, sibling in self.nodes:
            left = FpVar.conditionally_select(sibling_is_left, sibling, current)
            right = sibling + current - left
            current = hash_gadget.compress(left, right)
        return current

    def verify_membership(self, hash_gadget: HashFamilyGadget, root: FpVar,
                          leaf: Sequence[UInt8]) -> Boolean:
        return self.compute_root(hash_gadget, leaf).is_eq(root)

    def enforce_membership(self, hash_gadget: HashFamilyGadget, root: FpVar, leaf: Sequence[UInt8]):
        self.compute_root(hash_gadget, leaf).enforce_equal(root)


class MembershipCircuit(ConstraintSynthesizer):
    """Proves knowledge of a leaf and path under a public root"""

    def __init__(self, params: Parameters, root: int, leaf: bytes, path: AuthenticationPath, depth: int):
        self.params = params
        self.root = root
        self.leaf = leaf
        self.path = path
        self.depth = depth

    def generate_constraints(self, cs: ConstraintSystem) -> None:
        if self.path.depth != self.depth:
            raise SynthesisError(f"Path depth {self.path.depth} does not match circuit depth {self.depth}")
        params = ParametersVar.new_constant(cs, self.params)
        with cs.namespace("root"):
            root = FpVar.new_input(cs, self.root)
        with cs.namespace("leaf"):
            leaf = UInt8.new_witness_vec(cs, self.leaf)
        with cs.namespace("path"):
            path = AuthenticationPathVar.new_witness(cs, self.path)
        with cs.namespace("membership"):
            path.enforce_membership(params.hash_gadget, root, leaf)
