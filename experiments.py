"""
Huffman coder benchmark

Runs the coder over synthetic datasets, with repeated runs, and records how
close it gets to the entropy bound and how long each phase takes

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 7 --size_kb 1024 --max_kb 8192
  python experiments.py --outdir results --runs 3 --generators uniform256,zipf128,english_like --no_plots

Notes:
  - sizes in the scaling experiment grow in powers of two from --min_kb to --max_kb
  - compressed size counts packed bytes, so it includes up to 7 pad bits
"""

from __future__ import annotations

import argparse
import csv
import logging
import math
import random
import statistics
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt

import huffman as huff

logger = logging.getLogger(__name__)


# Utilities

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        )
    else:
        logging.getLogger().setLevel(level)
    return logger

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def pack_bits(bits: str) -> Tuple[bytes, int]:
    """
    Packs a '0'/'1' string MSB-first into bytes
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added at the end
    """
    out = bytearray()
    acc = 0
    acc_bits = 0

    for ch in bits:
        acc = (acc << 1) | (1 if ch == '1' else 0)
        acc_bits += 1
        if acc_bits == 8:
            out.append(acc & 0xFF)
            acc = 0
            acc_bits = 0

    pad_bits = 0
    if acc_bits != 0:
        pad_bits = 8 - acc_bits
        acc = acc << pad_bits
        out.append(acc & 0xFF)

    return bytes(out), pad_bits


def unpack_bits(packed: bytes, pad_bits: int) -> str:
    if not 0 <= pad_bits <= 7:
        raise ValueError(f"pad_bits must be in 0..7, got {pad_bits}")
    if pad_bits and not packed:
        raise ValueError("pad bits given for an empty buffer")
    total_bits = len(packed) * 8 - pad_bits
    return "".join(format(byte, "08b") for byte in packed)[:total_bits]


def shannon_entropy(freqs: Dict[int, int]) -> float:
    """Bits per symbol of an ideal code for this distribution."""
    total = sum(freqs.values())
    return -sum((f / total) * math.log2(f / total) for f in freqs.values())

def average_code_length(freqs: Dict[int, int], code_map: Dict[int, str]) -> float:
    total = sum(freqs.values())
    return sum(f * len(code_map[s]) for s, f in freqs.items()) / total


# Synthetic dataset generators

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_constant(size: int, symbol: int = ord('A'), seed: int = 0) -> bytes:
    return bytes([symbol]) * size

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    other_symbols = [i for i in range(256) if i != dominant]
    out = bytearray()
    for _ in range(size):
        if rng.random() < dom_frac:
            out.append(dominant)
        else:
            out.append(rng.choice(other_symbols))
    return bytes(out)

def _sample_cdf(rng: random.Random, cdf: List[float]) -> int:
    r = rng.random()
    lo, hi = 0, len(cdf) - 1
    while lo < hi:
        mid = (lo + hi) // 2
        if r <= cdf[mid]:
            hi = mid
        else:
            lo = mid + 1
    return lo

def _cdf(weights: List[float]) -> List[float]:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)
    return cdf

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    cdf = _cdf([1.0 / ((i + 1) ** s) for i in range(alphabet)])
    return bytes(_sample_cdf(rng, cdf) for _ in range(size))

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = (
        " etaoinshrdlcumwfgypbvkjxq"
        "ETAOINSHRDLCUMWFGYPBVKJXQ"
        "\n"
    )
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)

    cdf = _cdf(weights)
    return bytes(ord(chars[_sample_cdf(rng, cdf)]) for _ in range(size))

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "constant": lambda size, seed: gen_constant(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> bytes:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        known = ", ".join(sorted(GENERATOR_REGISTRY))
        raise ValueError(f"unknown dataset generator {name!r} (known: {known})")
    return fn(size_bytes, seed)


# Experiment runner

@dataclass
class ExperimentConfig:
    outdir: Path = Path("results")
    runs: int = 5
    seed: int = 123
    size_kb: int = 256
    generators: List[str] = field(default_factory=lambda: ["uniform256", "zipf128", "repetitive90", "english_like"])
    min_kb: int = 4
    max_kb: int = 1024
    plots: bool = True

    def scaling_sizes(self) -> List[int]:
        sizes: List[int] = []
        s = max(1, self.min_kb) * 1024
        while s <= max(1, self.max_kb) * 1024:
            sizes.append(s)
            s *= 2
        return sizes


@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    unique_symbols: int

    count_ms: float
    build_tree_ms: float
    build_codes_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    encoded_bits: int
    compressed_bytes: int
    pad_bits: int
    compression_ratio: float

    avg_code_length: float
    entropy_bits: float
    correctness_ok: int  # 1 or 0


def run_one(data: bytes) -> MetricRow:
    t0 = now_ns()
    ft = huff.build_frequency_table(data)
    t1 = now_ns()
    root = huff.build_huffman_tree(ft)
    t2 = now_ns()
    code_map = huff.generate_huffman_codes(root)
    t3 = now_ns()

    encoded = huff.huffman_encode(data, code_map)
    packed, pad_bits = pack_bits(encoded)
    t4 = now_ns()

    decoded = bytes(huff.huffman_decode(unpack_bits(packed, pad_bits), root))
    t5 = now_ns()

    correctness_ok = 1 if decoded == data else 0
    if not correctness_ok:
        logger.warning("round trip mismatch on %d-byte input", len(data))

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        unique_symbols=len(ft),
        count_ms=ns_to_ms(t1 - t0),
        build_tree_ms=ns_to_ms(t2 - t1),
        build_codes_ms=ns_to_ms(t3 - t2),
        encode_ms=ns_to_ms(t4 - t3),
        decode_ms=ns_to_ms(t5 - t4),
        total_ms=ns_to_ms(t5 - t0),
        encoded_bits=len(encoded),
        compressed_bytes=len(packed),
        pad_bits=pad_bits,
        compression_ratio=len(packed) / len(data),
        avg_code_length=average_code_length(ft, code_map),
        entropy_bits=shannon_entropy(ft),
        correctness_ok=correctness_ok,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)


SUMMARY_METRICS = ("compression_ratio", "avg_code_length", "encode_ms", "decode_ms", "build_tree_ms", "total_ms")

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "n_runs", "entropy_bits"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b = key
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "n_runs": len(items),
                "entropy_bits": statistics.mean(x.entropy_bits for x in items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                row[f"{m}_mean"], row[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(row)


# Plotting

def plot_distribution(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))

    def mean_for(dataset: str, field_name: str) -> float:
        vals = [getattr(r, field_name) for r in exp_rows if r.dataset_name == dataset]
        return statistics.mean(vals) if vals else float("nan")

    x = list(range(len(datasets)))

    plt.figure()
    plt.plot(x, [mean_for(d, "avg_code_length") for d in datasets], marker="o", label="huffman")
    plt.plot(x, [mean_for(d, "entropy_bits") for d in datasets], marker="x", linestyle="--", label="entropy")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Bits per Symbol")
    plt.title("Experiment 1: Average Code Length vs Entropy")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_code_length.png", dpi=200)
    plt.close()

    plt.figure()
    plt.plot(x, [mean_for(d, "compression_ratio") for d in datasets], marker="o")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Compressed Bytes / Original Bytes")
    plt.title("Experiment 1: Compression Ratio by Distribution")
    plt.tight_layout()
    plt.savefig(outdir / "exp1_compression_ratio.png", dpi=200)
    plt.close()


def plot_size_scaling(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    phases = ("count_ms", "build_tree_ms", "encode_ms", "decode_ms")

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, field_name: str) -> float:
            vals = [getattr(r, field_name) for r in dist_rows if r.file_size_bytes == size]
            return statistics.mean(vals) if vals else float("nan")

        plt.figure()
        for phase in phases:
            plt.plot(sizes, [mean_size(s, phase) for s in sizes], marker="o", label=phase[:-3])
        plt.xscale("log", base=2)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Time (ms)")
        plt.title(f"Experiment 2: Phase Time vs Size ({dist})")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / f"exp2_phase_time_{dist}.png", dpi=200)
        plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]


def run_experiments(config: ExperimentConfig) -> List[MetricRow]:
    rows: List[MetricRow] = []

    # Experiment 1: distributions (fixed size)
    fixed_size = max(1, config.size_kb) * 1024
    for gen_name in config.generators:
        logger.info("exp1 %s: %d bytes x %d runs", gen_name, fixed_size, config.runs)
        for run_id in range(1, config.runs + 1):
            row = run_one(generate_dataset(gen_name, fixed_size, config.seed + run_id))
            row.exp_name = "exp1_distribution"
            row.dataset_name = gen_name
            row.run_id = run_id
            rows.append(row)

    # Experiment 2: size scaling (powers of 2)
    for gen_name in config.generators:
        for size_b in config.scaling_sizes():
            logger.info("exp2 %s: %d bytes x %d runs", gen_name, size_b, config.runs)
            for run_id in range(1, config.runs + 1):
                row = run_one(generate_dataset(gen_name, size_b, config.seed + 10_000 + size_b + run_id))
                row.exp_name = "exp2_size_scaling"
                row.dataset_name = gen_name
                row.run_id = run_id
                rows.append(row)

    return rows


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--size_kb", type=int, default=256, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--generators", type=str, default="uniform256,zipf128,repetitive90,english_like",
                    help="Comma-separated dataset generator names")
    ap.add_argument("--min_kb", type=int, default=4, help="Experiment 2 min size in KB")
    ap.add_argument("--max_kb", type=int, default=1024, help="Experiment 2 max size in KB")
    ap.add_argument("--no_plots", action="store_true", help="Skip writing charts")
    ap.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    args = ap.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = ExperimentConfig(
        outdir=Path(args.outdir),
        runs=max(1, args.runs),
        seed=args.seed,
        size_kb=args.size_kb,
        generators=parse_csv_list(args.generators),
        min_kb=args.min_kb,
        max_kb=args.max_kb,
        plots=not args.no_plots,
    )
    unknown = [g for g in config.generators if g not in GENERATOR_REGISTRY]
    if unknown:
        ap.error(f"unknown generators: {', '.join(unknown)}")

    safe_mkdir(config.outdir)
    try:
        rows = run_experiments(config)
    except huff.HuffmanError as e:
        logger.error("experiment failed: %s", e)
        return 1

    # Write raw and summary
    metrics_csv = config.outdir / "metrics.csv"
    summary_csv = config.outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if config.plots:
        plot_distribution(rows, config.outdir)
        plot_size_scaling(rows, config.outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if config.plots:
        print("Charts saved in:", config.outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
