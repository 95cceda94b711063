import heapq
import itertools
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, Iterator, Union

logger = logging.getLogger(__name__)


# Errors

class HuffmanError(Exception):
    """Base class for every failure raised by the coder."""


class EmptyAlphabetError(HuffmanError, ValueError):
    pass


class UnknownSymbolError(HuffmanError, KeyError):
    def __init__(self, symbol):
        super().__init__(symbol)
        self.symbol = symbol

    def __str__(self):
        return f"symbol {self.symbol!r} has no entry in the code table"


class TruncatedStreamError(HuffmanError, ValueError):
    def __init__(self, bits_consumed: int):
        super().__init__(f"bit stream ends in the middle of a code after {bits_consumed} bits")
        self.bits_consumed = bits_consumed


class MalformedTreeError(HuffmanError):
    pass


class InvalidBitError(HuffmanError, ValueError):
    def __init__(self, bit, position: int):
        super().__init__(f"invalid bit {bit!r} at position {position}")
        self.bit = bit
        self.position = position


# Tree nodes

@dataclass(frozen=True)
class Leaf: # holds one symbol and its frequency
    symbol: Hashable
    weight: int


@dataclass(frozen=True)
class Internal: # merge point, weight is the sum of both children
    weight: int
    left: "TreeNode"
    right: "TreeNode"


TreeNode = Union[Leaf, Internal]

_LEFT_BITS = ("0", 0)
_RIGHT_BITS = ("1", 1)


# Frequency counting

def build_frequency_table(symbols: Iterable) -> Dict[Any, int]: # symbols: bytes, str or any iterable of hashable values
    table = dict(Counter(symbols))
    if not table:
        raise EmptyAlphabetError("cannot build a frequency table from an empty input")
    return table


def merge_frequency_tables(*tables: Dict[Any, int]) -> Dict[Any, int]:
    """
    Combine tables counted over separate shards of one input.
    Counts are added, so the result does not depend on where the shards were cut
    """
    merged: Counter = Counter()
    for table in tables:
        merged.update(table)
    if not merged:
        raise EmptyAlphabetError("no symbols in any of the frequency tables")
    return dict(merged)


# Tree construction

def build_huffman_tree(frequency_table: Dict[Any, int]) -> TreeNode: # frequency_table: dict of symbol -> frequency
    """
    Greedy bottom-up merge of the two lightest nodes until one remains.

    Heap entries are (weight, sequence, node). The sequence number grows with
    every push, so nodes of equal weight leave the heap in the order they went
    in. Leaves are pushed in ascending symbol order, which makes the resulting
    tree and code table reproducible across runs.
    """
    if not frequency_table:
        raise EmptyAlphabetError("cannot build a Huffman tree from an empty frequency table")

    sequence = itertools.count()
    priority_queue = []
    for symbol in sorted(frequency_table):
        weight = frequency_table[symbol]
        if not isinstance(weight, int) or weight < 1:
            raise ValueError(f"frequency of {symbol!r} must be a positive integer, got {weight!r}")
        priority_queue.append((weight, next(sequence), Leaf(symbol, weight)))
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left_weight, _, left = heapq.heappop(priority_queue)
        right_weight, _, right = heapq.heappop(priority_queue)
        merged = Internal(left_weight + right_weight, left, right)
        heapq.heappush(priority_queue, (merged.weight, next(sequence), merged))

    root = priority_queue[0][2]
    logger.debug("built Huffman tree over %d symbols, total weight %d", len(frequency_table), root.weight)
    return root


def iter_nodes(root: TreeNode) -> Iterator[TreeNode]:
    """Pre-order walk: node, then its left subtree, then its right subtree."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, Internal):
            stack.append(node.right)
            stack.append(node.left)


# Code table

def generate_huffman_codes(root: TreeNode) -> Dict[Any, str]: # root: root of the Huffman tree
    # A lone leaf would get the empty code, which cannot be delimited in a stream
    if isinstance(root, Leaf):
        return {root.symbol: "0"}

    codes = {}
    stack = [(root, "")]
    while stack:
        node, current_code = stack.pop()
        if isinstance(node, Leaf):
            codes[node.symbol] = current_code
        elif isinstance(node, Internal) and node.left is not None and node.right is not None:
            stack.append((node.right, current_code + "1"))
            stack.append((node.left, current_code + "0"))
        else:
            raise MalformedTreeError(f"unexpected node {node!r} at path {current_code!r}")
    return codes


# Encode / decode

def huffman_encode(symbols: Iterable, code_map: Dict[Any, str]) -> str: # code_map: dict of symbol -> Huffman code
    out = []
    for symbol in symbols:
        try:
            out.append(code_map[symbol])
        except KeyError:
            raise UnknownSymbolError(symbol) from None
    return "".join(out)


def _child(node: TreeNode, bit, position: int) -> TreeNode:
    if isinstance(node, Leaf):
        raise MalformedTreeError(f"bit {position} descends from leaf {node.symbol!r}")
    if not isinstance(node, Internal):
        raise MalformedTreeError(f"unexpected node {node!r}")
    child = node.left if bit in _LEFT_BITS else node.right
    if child is None:
        raise MalformedTreeError(f"bit {position} descends into a missing child")
    return child


def huffman_decode(bits: Iterable, root: TreeNode) -> list: # bits: '0'/'1' string or iterable of 0/1 ints
    decoded = []
    if isinstance(root, Leaf):
        # Single-symbol alphabet, every symbol was written as "0"
        for position, bit in enumerate(bits):
            if bit in _LEFT_BITS:
                decoded.append(root.symbol)
            elif bit in _RIGHT_BITS:
                raise MalformedTreeError(f"bit {position} descends into a missing child of leaf {root.symbol!r}")
            else:
                raise InvalidBitError(bit, position)
        return decoded

    node = root
    consumed = 0
    for position, bit in enumerate(bits):
        if bit not in _LEFT_BITS and bit not in _RIGHT_BITS:
            raise InvalidBitError(bit, position)
        node = _child(node, bit, position)
        consumed = position + 1
        if isinstance(node, Leaf): # reached a leaf
            decoded.append(node.symbol)
            node = root

    if node is not root:
        raise TruncatedStreamError(consumed)
    return decoded
