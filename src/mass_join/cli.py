import argparse
import sys

from .join import JOIN_TYPES
from .match_engine import JoinConfig, JoinEngine, load_table


def _add_join_parser(sub):
    p = sub.add_parser("join", help="Join two feature tables on a sorted numeric key within tolerance")
    p.add_argument("ds1", type=str, help="Path to DS1 CSV/TSV (left table)")
    p.add_argument("ds2", type=str, help="Path to DS2 CSV/TSV (right table)")
    p.add_argument("--out", type=str, required=True, help="Output CSV for the joined table")
    p.add_argument("--key", type=str, default="MZ", help="Numeric column to join on")
    p.add_argument("--id-col", dest="id_col", type=str, default=None, help="Feature id column (default: row number)")
    p.add_argument("--tolerance", type=float, default=0.0, help="Absolute tolerance in key units")
    p.add_argument("--ppm", type=float, default=0.0, help="Relative tolerance in ppm of the left key")
    p.add_argument("--how", type=str, choices=JOIN_TYPES, default="outer")
    p.add_argument("--sep", type=str, default=None, help="Input delimiter (default: ',' or tab for .tsv)")
    return p


def main(argv=None):
    argv = argv or sys.argv[1:]
    ap = argparse.ArgumentParser(prog="mass-join", description="Tolerance-aware joins of sorted LC-MS feature keys")
    sub = ap.add_subparsers(dest="cmd", required=True)
    _add_join_parser(sub)
    args = ap.parse_args(argv)

    if args.cmd == "join":
        read_kwargs = {"sep": args.sep} if args.sep else {}
        try:
            ds1 = load_table(args.ds1, key_col=args.key, **read_kwargs)
            ds2 = load_table(args.ds2, key_col=args.key, **read_kwargs)
            cfg = JoinConfig(
                key=args.key, tolerance=args.tolerance, ppm=args.ppm,
                how=args.how, id_col=args.id_col,
            )
            res = JoinEngine().join_tables(ds1, ds2, cfg)
        except (ValueError, FileNotFoundError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        res.joined.to_csv(args.out, index=False)
        print(f"wrote {args.out} with {len(res.joined)} rows ({res.metrics['n_matched']} matched)")
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
