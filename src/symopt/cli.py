"""
symopt Command-Line Interface

Examples:
    symopt minimize "x^2+2*y^2" -c "x^2-2*x+2*y^2+4*y=0" -v x -v y --locus
    symopt maximize "x*(1-x)" -v "x=0..1"
    symopt extrema "x*y" -c "x+y=1" -v x -v y
    symopt implicitdiff "y" -c "x^2*y+y^2=1" --dep y -v x
"""

import sys
import argparse
from typing import List, Optional, Tuple

import sympy as sp
from sympy.parsing.sympy_parser import (
    convert_xor,
    parse_expr,
    standard_transformations,
)

from .contract import ConstrainedProblem
from .core.canonical_json import canonical_dumps
from .core.errors import ExtremaError, InvalidArityError
from .core.output_gate import Classification
from .api import implicit_diff
from .solver.config import ExtremaConfig
from .solver.global_extrema import solve_global
from .solver.local_extrema import find_local_extrema

TRANSFORMATIONS = standard_transformations + (convert_xor,)


def parse(text: str, symbols: Optional[dict] = None) -> sp.Expr:
    """Parse an expression; ``^`` is accepted for powers."""
    try:
        return parse_expr(text, local_dict=symbols or {}, transformations=TRANSFORMATIONS)
    except (SyntaxError, TypeError, ValueError) as exc:
        raise InvalidArityError(f"Cannot parse '{text}': {exc}") from exc


def parse_constraint(text: str, symbols: dict):
    """Parse ``lhs=rhs``, ``lhs<=rhs``, ``lhs>=rhs`` or a bare expression."""
    for op, rel in (("<=", sp.Le), (">=", sp.Ge), ("==", sp.Eq), ("=", sp.Eq)):
        if op in text:
            lhs, rhs = text.split(op, 1)
            return rel(parse(lhs, symbols), parse(rhs, symbols), evaluate=False)
    if "<" in text or ">" in text:
        raise InvalidArityError(f"Strict inequalities are not supported: '{text}'")
    return parse(text, symbols)


def parse_variable(text: str) -> Tuple[sp.Symbol, Optional[Tuple[sp.Expr, sp.Expr]]]:
    """Parse ``x`` or ``x=lo..hi``."""
    if "=" not in text:
        return sp.Symbol(text.strip()), None
    name, rng = text.split("=", 1)
    if ".." not in rng:
        raise InvalidArityError(f"Variable range must look like lo..hi, got '{rng}'")
    lo, hi = rng.split("..", 1)
    return sp.Symbol(name.strip()), (parse(lo), parse(hi))


def build_problem(args, negate: bool = False) -> ConstrainedProblem:
    specs = [parse_variable(v) for v in args.var or []]
    symbols = {str(v): v for v, _ in specs}
    objective = parse(args.expr, symbols)
    if negate:
        objective = -objective
    constraints = [parse_constraint(c, symbols) for c in args.constraint or []]
    variables = [v if r is None else (v, r[0], r[1]) for v, r in specs] or None
    return ConstrainedProblem.create(objective, constraints, variables, name=args.command)


def _format_point(point) -> str:
    if len(point) == 1:
        return sp.sstr(point[0])
    return "(" + ", ".join(sp.sstr(c) for c in point) + ")"


def _save(args, data: dict, receipts) -> None:
    if args.output:
        with open(args.output, 'w') as f:
            f.write(canonical_dumps(data, indent=2))
        print(f"\nResults saved to: {args.output}")
    if args.receipts and receipts is not None:
        receipts.save_json(args.receipts)
        print(f"Receipts saved to: {args.receipts}")


def cmd_optimize(args):
    """Global minimum or maximum."""
    maximize = args.command == 'maximize'
    problem = build_problem(args, negate=maximize)
    config = ExtremaConfig(verbose=args.verbose)
    result = solve_global(problem, config=config)

    value = result.min_value
    if value is not None and maximize:
        value = -value

    print(f"{args.command.capitalize()}: {value if value is not None else 'none'}")
    if args.locus:
        for point in result.minimizers:
            print(f"  at {_format_point(point)}")

    data = {
        "command": args.command,
        "problem": problem.to_canonical(),
        "value": sp.sstr(value) if value is not None else None,
        "points": [[sp.sstr(c) for c in p] for p in result.minimizers],
        "receipts_hash": result.receipts.final_hash,
    }
    _save(args, data, result.receipts)
    return 0 if value is not None else 1


def cmd_extrema(args):
    """Classify critical points."""
    problem = build_problem(args)
    config = ExtremaConfig(verbose=args.verbose)
    constraints = [sp.Eq(h, 0, evaluate=False) for h in problem.equalities]
    if problem.inequalities:
        raise InvalidArityError("extrema accepts equality constraints only")
    variables = [
        v if r == sp.Interval(-sp.oo, sp.oo) else (v, r.inf, r.sup)
        for v, r in zip(problem.variables, problem.ranges)
    ]
    result = find_local_extrema(
        problem.objective, constraints, variables, max_order=args.order, config=config
    )

    if result.max_order == 0:
        print("Critical points:")
        for p in result.points:
            print(f"  {_format_point(p.coordinates)}")
    else:
        print("Minima: " + ", ".join(_format_point(p) for p in result.minima))
        print("Maxima: " + ", ".join(_format_point(p) for p in result.maxima))
        for p in result.points:
            if p.classification not in (Classification.MIN, Classification.MAX):
                print(f"  {_format_point(p.coordinates)}: {p.classification.value}")

    _save(args, dict(result.to_canonical(), command=args.command), result.receipts)
    return 0


def cmd_implicitdiff(args):
    """Implicit partial derivative."""
    if not args.dep:
        raise InvalidArityError("implicitdiff needs at least one --dep variable")
    diff_vars = [parse_variable(v)[0] for v in args.var or []]
    deps = [sp.Symbol(d) for d in args.dep]
    symbols = {str(v): v for v in diff_vars + deps}
    f = parse(args.expr, symbols)
    constraints = [parse_constraint(c, symbols) for c in args.constraint or []]
    result = implicit_diff(f, constraints, deps, *diff_vars)
    print(sp.sstr(result))
    _save(args, {"command": args.command, "derivative": sp.sstr(result)}, None)
    return 0


def cmd_version(args):
    """Print version information."""
    from . import __version__
    print(f"symopt {__version__}")
    print("Symbolic constrained extrema and implicit differentiation")
    return 0


def _add_problem_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('expr', help='Objective expression')
    parser.add_argument('--constraint', '-c', action='append',
                        help='Constraint such as "x+y=1" or "x^2<=4" (repeatable)')
    parser.add_argument('--var', '-v', action='append',
                        help='Variable, optionally with range: "x" or "x=0..1" (repeatable)')
    parser.add_argument('--verbose', action='store_true',
                        help='Print progress and inconclusive points')
    parser.add_argument('--output', '-o', type=str,
                        help='Output JSON file')
    parser.add_argument('--receipts', type=str,
                        help='Receipt chain JSON file')


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='symopt',
        description='symopt - Symbolic Constrained Extrema'
    )
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    for name in ('minimize', 'maximize'):
        opt_parser = subparsers.add_parser(name, help=f'Global {name[:3]}imum')
        _add_problem_arguments(opt_parser)
        opt_parser.add_argument('--locus', action='store_true',
                                help='Also print the points attaining the value')
        opt_parser.set_defaults(func=cmd_optimize)

    ext_parser = subparsers.add_parser('extrema', help='Local extrema')
    _add_problem_arguments(ext_parser)
    ext_parser.add_argument('--order', type=int, default=5,
                            help='Highest derivative order for classification (default: 5)')
    ext_parser.set_defaults(func=cmd_extrema)

    diff_parser = subparsers.add_parser('implicitdiff', help='Implicit differentiation')
    _add_problem_arguments(diff_parser)
    diff_parser.add_argument('--dep', action='append',
                             help='Dependent variable (repeatable, one per constraint)')
    diff_parser.set_defaults(func=cmd_implicitdiff)

    ver_parser = subparsers.add_parser('version', help='Print version')
    ver_parser.set_defaults(func=cmd_version)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except ExtremaError as exc:
        print(f"Error: {exc}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
