import random

import pytest

import huffman as huff

DEMO_TEXT = "a" * 45 + "b" * 13 + "c" * 12 + "d" * 16 + "e" * 9 + "f" * 5


def _pipeline(symbols):
    root = huff.build_huffman_tree(huff.build_frequency_table(symbols))
    code_map = huff.generate_huffman_codes(root)
    return root, code_map


@pytest.fixture
def demo_tree():
    return _pipeline(DEMO_TEXT)


# Frequency counting

def test_frequency_table_counts_every_symbol():
    assert huff.build_frequency_table("abracadabra") == {"a": 5, "b": 2, "r": 2, "c": 1, "d": 1}


def test_frequency_table_of_bytes_uses_int_symbols():
    assert huff.build_frequency_table(b"\x00\x00\xff") == {0: 2, 255: 1}


def test_frequency_table_empty_input():
    with pytest.raises(huff.EmptyAlphabetError):
        huff.build_frequency_table("")


def test_merged_shards_match_whole_input():
    text = "the quick brown fox jumps over the lazy dog"
    shards = [text[:7], text[7:20], text[20:]]
    tables = [huff.build_frequency_table(s) for s in shards]
    assert huff.merge_frequency_tables(*tables) == huff.build_frequency_table(text)
    assert huff.merge_frequency_tables(*reversed(tables)) == huff.build_frequency_table(text)


def test_merge_of_empty_tables():
    with pytest.raises(huff.EmptyAlphabetError):
        huff.merge_frequency_tables({}, {})


# Tree construction

def test_aaab_tree_shape():
    root, code_map = _pipeline("aaab")
    assert isinstance(root, huff.Internal)
    assert root.weight == 4
    assert root.left == huff.Leaf("b", 1)
    assert root.right == huff.Leaf("a", 3)
    assert code_map == {"b": "0", "a": "1"}


def test_demo_text_codes(demo_tree):
    root, code_map = demo_tree
    assert root.weight == len(DEMO_TEXT)
    assert code_map == {
        "a": "0",
        "c": "100",
        "b": "101",
        "f": "1100",
        "e": "1101",
        "d": "111",
    }


def test_equal_weights_leave_heap_in_insertion_order():
    root = huff.build_huffman_tree({"d": 1, "c": 1, "b": 1, "a": 1})
    assert huff.generate_huffman_codes(root) == {"a": "00", "b": "01", "c": "10", "d": "11"}


def test_merged_node_ties_with_leaf():
    # a+b merge into weight 2, which ties with c; c was pushed first
    root = huff.build_huffman_tree({"a": 1, "b": 1, "c": 2})
    assert huff.generate_huffman_codes(root) == {"c": "0", "a": "10", "b": "11"}


def test_build_is_reproducible():
    table = {s: 3 for s in "qwertyuiop"}
    first = huff.generate_huffman_codes(huff.build_huffman_tree(table))
    for _ in range(5):
        assert huff.generate_huffman_codes(huff.build_huffman_tree(dict(reversed(list(table.items()))))) == first


def test_weight_invariant_holds_everywhere():
    rng = random.Random(7)
    data = bytes(rng.choice(b"aaaaabbbccd\x00\xff") for _ in range(500))
    root, _ = _pipeline(data)
    internals = [n for n in huff.iter_nodes(root) if isinstance(n, huff.Internal)]
    assert internals
    for node in internals:
        assert node.weight == node.left.weight + node.right.weight


def test_single_symbol_tree_is_a_leaf():
    root = huff.build_huffman_tree({"x": 9})
    assert root == huff.Leaf("x", 9)


def test_empty_table():
    with pytest.raises(huff.EmptyAlphabetError):
        huff.build_huffman_tree({})


@pytest.mark.parametrize("count", [0, -2, 1.5])
def test_non_positive_counts_rejected(count):
    with pytest.raises(ValueError):
        huff.build_huffman_tree({"a": 3, "b": count})


def test_nodes_are_immutable():
    leaf = huff.Leaf("a", 1)
    with pytest.raises(AttributeError):
        leaf.weight = 5


def test_iter_nodes_is_preorder():
    root, _ = _pipeline("aaab")
    assert list(huff.iter_nodes(root)) == [root, huff.Leaf("b", 1), huff.Leaf("a", 3)]


# Code table

def test_codes_are_prefix_free():
    rng = random.Random(11)
    data = bytes(rng.randrange(0, 40) for _ in range(2000))
    _, code_map = _pipeline(data)
    codes = list(code_map.values())
    assert len(set(codes)) == len(codes)
    for i, a in enumerate(codes):
        assert a
        for j, b in enumerate(codes):
            if i != j:
                assert not b.startswith(a)


def test_single_symbol_gets_one_bit_code():
    assert huff.generate_huffman_codes(huff.Leaf("a", 4)) == {"a": "0"}


def test_codes_of_malformed_tree():
    broken = huff.Internal(2, huff.Leaf("a", 1), None)
    with pytest.raises(huff.MalformedTreeError):
        huff.generate_huffman_codes(broken)


# Encode / decode

def test_aaab_encode_decode():
    root, code_map = _pipeline("aaab")
    encoded = huff.huffman_encode("aaab", code_map)
    assert encoded == "1110"
    assert "".join(huff.huffman_decode(encoded, root)) == "aaab"


def test_decode_accepts_int_bits():
    root, _ = _pipeline("aaab")
    assert huff.huffman_decode([1, 1, 1, 0], root) == ["a", "a", "a", "b"]


@pytest.mark.parametrize("text", [
    "ab",
    "abracadabra",
    "mississippi river",
    DEMO_TEXT,
])
def test_round_trip_text(text):
    root, code_map = _pipeline(text)
    assert "".join(huff.huffman_decode(huff.huffman_encode(text, code_map), root)) == text


def test_round_trip_random_bytes():
    rng = random.Random(3)
    data = bytes(rng.getrandbits(8) for _ in range(4096))
    root, code_map = _pipeline(data)
    assert bytes(huff.huffman_decode(huff.huffman_encode(data, code_map), root)) == data


def test_skewed_input_compresses():
    data = b"a" * 300 + b"b" * 40 + bytes(range(60, 90))
    _, code_map = _pipeline(data)
    assert len(huff.huffman_encode(data, code_map)) < 8 * len(data)


def test_single_symbol_round_trip():
    text = "aaaa"
    root, code_map = _pipeline(text)
    encoded = huff.huffman_encode(text, code_map)
    assert encoded == "0000"
    assert huff.huffman_decode(encoded, root) == ["a"] * 4


def test_single_symbol_one_bit_is_malformed():
    with pytest.raises(huff.MalformedTreeError):
        huff.huffman_decode("001", huff.Leaf("a", 3))


def test_empty_stream_decodes_to_nothing(demo_tree):
    root, _ = demo_tree
    assert huff.huffman_decode("", root) == []


def test_unknown_symbol():
    _, code_map = _pipeline("aaab")
    with pytest.raises(huff.UnknownSymbolError) as excinfo:
        huff.huffman_encode("abz", code_map)
    assert excinfo.value.symbol == "z"
    assert isinstance(excinfo.value, KeyError)


def test_truncated_stream(demo_tree):
    root, code_map = demo_tree
    encoded = huff.huffman_encode("dc", code_map)
    assert encoded == "111100"
    with pytest.raises(huff.TruncatedStreamError) as excinfo:
        huff.huffman_decode(encoded[:-1], root)
    assert excinfo.value.bits_consumed == 5


def test_invalid_bit():
    root, _ = _pipeline("aaab")
    with pytest.raises(huff.InvalidBitError) as excinfo:
        huff.huffman_decode("1x0", root)
    assert excinfo.value.position == 1
    assert excinfo.value.bit == "x"


def test_decode_through_missing_child():
    broken = huff.Internal(2, huff.Leaf("a", 1), None)
    assert huff.huffman_decode("0", broken) == ["a"]
    with pytest.raises(huff.MalformedTreeError):
        huff.huffman_decode("1", broken)


def test_errors_share_a_base_class():
    for err in (huff.EmptyAlphabetError, huff.UnknownSymbolError, huff.TruncatedStreamError,
                huff.MalformedTreeError, huff.InvalidBitError):
        assert issubclass(err, huff.HuffmanError)
