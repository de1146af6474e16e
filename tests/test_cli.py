"""
Tests for the Command-Line Interface
"""

import json

import pytest
import sympy as sp
from symopt.cli import main, parse, parse_constraint, parse_variable
from symopt.core.errors import InvalidArityError
from symopt.receipts import ReceiptChain

x, y = sp.symbols('x y')


class TestParsing:
    """Test command-line expression parsing."""

    def test_caret_power(self):
        """^ is a power."""
        assert parse("x^2 + 1") == x**2 + 1

    def test_constraints(self):
        """=, <= and >= become relationals."""
        symbols = {'x': x, 'y': y}
        assert parse_constraint("x+y=1", symbols) == sp.Eq(x + y, 1)
        assert parse_constraint("x<=2", symbols) == sp.Le(x, 2)
        assert parse_constraint("x>=0", symbols) == sp.Ge(x, 0)
        assert parse_constraint("x-y", symbols) == x - y

    def test_strict_rejected(self):
        """Strict inequalities are rejected."""
        with pytest.raises(InvalidArityError):
            parse_constraint("x<1", {'x': x})

    def test_variables(self):
        """Variables with and without ranges."""
        assert parse_variable("x") == (x, None)
        assert parse_variable("x=0..1") == (x, (0, 1))
        with pytest.raises(InvalidArityError):
            parse_variable("x=1")

    def test_bad_expression(self):
        """Unparseable input is an InvalidArityError."""
        with pytest.raises(InvalidArityError):
            parse("x +* ")


class TestCommands:
    """Test subcommands end to end."""

    def test_minimize_locus(self, capsys):
        """minimize prints the value and the minimizers."""
        code = main([
            "minimize", "x^2+2*y^2", "-c", "x^2-2*x+2*y^2+4*y=0",
            "-v", "x", "-v", "y", "--locus",
        ])
        out = capsys.readouterr().out
        assert code == 0
        assert "Minimize: 0" in out
        assert "at (0, 0)" in out

    def test_maximize_range(self, capsys):
        """maximize over a ranged variable."""
        code = main(["maximize", "x*(1-x)", "-v", "x=0..1"])
        assert code == 0
        assert "Maximize: 1/4" in capsys.readouterr().out

    def test_minimize_empty(self, capsys):
        """No candidates gives exit code 1."""
        code = main(["minimize", "x", "-c", "x^2+1=0", "-v", "x"])
        assert code == 1
        assert "none" in capsys.readouterr().out

    def test_extrema(self, capsys):
        """extrema prints minima and maxima."""
        code = main(["extrema", "x*y", "-c", "x+y=1", "-v", "x", "-v", "y"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Maxima: (1/2, 1/2)" in out

    def test_extrema_order_zero(self, capsys):
        """Order 0 lists critical points."""
        main(["extrema", "x^2-y^2", "-v", "x", "-v", "y", "--order", "0"])
        assert "Critical points:" in capsys.readouterr().out

    def test_implicitdiff(self, capsys):
        """implicitdiff prints the derivative."""
        code = main(["implicitdiff", "y", "-c", "x^2+y=1", "--dep", "y", "-v", "x", "-v", "x"])
        assert code == 0
        assert capsys.readouterr().out.strip() == "-2"

    def test_output_files(self, tmp_path, capsys):
        """Results and receipts are saved as JSON."""
        out_file = tmp_path / "result.json"
        receipts_file = tmp_path / "receipts.json"
        main([
            "minimize", "x^2", "-v", "x=-1..1",
            "--output", str(out_file), "--receipts", str(receipts_file),
        ])
        data = json.loads(out_file.read_text())
        assert data["value"] == "0"
        chain = ReceiptChain.load_json(receipts_file)
        assert chain.verify_chain()
        assert chain.final_hash == data["receipts_hash"]

    def test_error_exit_code(self, capsys):
        """Solver errors are reported with exit code 2."""
        code = main(["implicitdiff", "y", "-c", "x=1", "--dep", "y", "-v", "x"])
        assert code == 2
        assert "Error:" in capsys.readouterr().out

    def test_version(self, capsys):
        """version prints the package version."""
        assert main(["version"]) == 0
        assert "symopt 0.1.0" in capsys.readouterr().out

    def test_no_command(self, capsys):
        """No subcommand prints help."""
        assert main([]) == 0
