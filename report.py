"""
Demo driver for the Huffman coder

Runs the whole pipeline on one text and prints:
  - the tree, one node per line (left children first)
  - the code table
  - the encoded bits and the decoded text
  - sizes before/after and the compression ratio

How to run:
  python report.py
  python report.py --text "abracadabra"
  python report.py --text "abracadabra" --quiet
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import huffman as huff

DEMO_TEXT = (
    "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
    "bbbbbbbbbbbbb"
    "cccccccccccc"
    "dddddddddddddddd"
    "eeeeeeeee"
    "fffff"
)


@dataclass
class CompressionSummary:
    original_bits: int
    encoded_bits: int
    ratio: float  # encoded / original


def _label(node: huff.TreeNode) -> str:
    if isinstance(node, huff.Leaf):
        return f"{node.symbol} {node.weight}"
    return f"* {node.weight}"


def format_tree(root: huff.TreeNode) -> str:
    lines: List[str] = []

    def walk(node, prefix: str, is_left: bool) -> None:
        lines.append(prefix + ("├────" if is_left else "└────") + _label(node))
        if isinstance(node, huff.Internal):
            child_prefix = prefix + ("│    " if is_left else "     ")
            walk(node.left, child_prefix, True)
            walk(node.right, child_prefix, False)

    walk(root, "", False)
    return "\n".join(lines)


def format_code_table(code_map: Dict) -> str:
    # Shortest codes first, then by symbol
    rows = sorted(code_map.items(), key=lambda kv: (len(kv[1]), kv[0]))
    return "\n".join(f"{symbol} {code}" for symbol, code in rows)


def compression_summary(symbols: Sequence, encoded: str, bits_per_symbol: int = 8) -> CompressionSummary:
    if len(symbols) == 0:
        raise huff.EmptyAlphabetError("nothing to compare against an empty input")
    original_bits = len(symbols) * bits_per_symbol
    return CompressionSummary(
        original_bits=original_bits,
        encoded_bits=len(encoded),
        ratio=len(encoded) / original_bits,
    )


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman-code a text and report the result")
    ap.add_argument("--text", type=str, default=DEMO_TEXT, help="Text to compress")
    ap.add_argument("--quiet", action="store_true", help="Only print sizes and the compression ratio")
    args = ap.parse_args(argv)

    text = args.text
    try:
        ft = huff.build_frequency_table(text)
        root = huff.build_huffman_tree(ft)
        code_map = huff.generate_huffman_codes(root)
        encoded = huff.huffman_encode(text, code_map)
        decoded = "".join(huff.huffman_decode(encoded, root))
    except huff.HuffmanError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if decoded != text:
        print("error: decoded text does not match the input", file=sys.stderr)
        return 1

    if not args.quiet:
        print(format_tree(root))
        print(format_code_table(code_map))
        print(encoded)
        print(decoded)

    summary = compression_summary(text, encoded)
    print(f"Before: {summary.original_bits} Bits.")
    print(f"After: {summary.encoded_bits} Bits.")
    print(f"Compression Ratio: {summary.ratio * 100:.2f}%")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
