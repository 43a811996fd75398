from __future__ import annotations

import math
import struct
import sys
import unittest

from rpn_expr import Expression, ExpressionCompileError, UnknownVariableError, try_compile


def _bits(value: float) -> bytes:
    return struct.pack("<d", value)


class EvaluationSemanticsTests(unittest.TestCase):
    def _eval(self, source: str, **bindings: float) -> float:
        expr = Expression(source)
        for name, value in bindings.items():
            expr.set(name, value)
        return expr.evaluate()

    def test_precedence(self) -> None:
        self.assertEqual(self._eval("2+3*4"), 14.0)
        self.assertEqual(self._eval("(2+3)*4"), 20.0)
        self.assertEqual(self._eval("2*3+4"), 10.0)

    def test_power_is_right_associative(self) -> None:
        self.assertEqual(self._eval("2^3^2"), 512.0)
        self.assertEqual(self._eval("(2^3)^2"), 64.0)
        self.assertEqual(self._eval("a^b^c", a=2, b=3, c=2), 512.0)

    def test_subtraction_and_division_group_left(self) -> None:
        self.assertEqual(self._eval("10-3-2"), 5.0)
        self.assertEqual(self._eval("100/5/2"), 10.0)
        self.assertEqual(self._eval("a-b-c", a=10, b=3, c=2), 5.0)
        self.assertEqual(self._eval("a/b/c", a=100, b=5, c=2), 10.0)

    def test_binary_pop_order_uses_first_pop_as_right_operand(self) -> None:
        self.assertEqual(self._eval("a-b", a=10, b=4), 6.0)
        self.assertEqual(self._eval("a/b", a=10, b=4), 2.5)
        self.assertEqual(self._eval("a^b", a=2, b=10), 1024.0)

    def test_unary_minus_binds_tighter_than_power(self) -> None:
        self.assertEqual(self._eval("-2^2"), 4.0)
        self.assertEqual(self._eval("-a^2", a=2), 4.0)
        self.assertEqual(self._eval("2^-2"), 0.25)
        self.assertEqual(self._eval("2^-3^2"), 512.0)
        self.assertEqual(self._eval("-(2^2)"), -4.0)

    def test_unary_and_function_chains(self) -> None:
        self.assertEqual(self._eval("sqrt sqrt 16"), 2.0)
        self.assertEqual(self._eval("--2"), 2.0)
        self.assertEqual(self._eval("2*-3"), -6.0)
        self.assertEqual(self._eval("-3!"), -6.0)
        self.assertEqual(self._eval("2^3!"), 64.0)
        self.assertEqual(self._eval("3!!"), 720.0)
        self.assertEqual(self._eval("sqrt 16+9"), 13.0)
        self.assertEqual(self._eval("sqrt(16+9)"), 5.0)
        self.assertAlmostEqual(self._eval("sin -1"), math.sin(-1.0), places=15)
        self.assertAlmostEqual(self._eval("sin x", x=-1), math.sin(-1.0), places=15)

    def test_functions(self) -> None:
        cases = {
            "sqrt 2": math.sqrt(2.0),
            "sin 0.5": math.sin(0.5),
            "cos 0.5": math.cos(0.5),
            "tan 0.5": math.tan(0.5),
            "asin 0.5": math.asin(0.5),
            "acos 0.5": math.acos(0.5),
            "atan 0.5": math.atan(0.5),
            "log 10": math.log(10.0),
        }
        for source, expected in cases.items():
            with self.subTest(source=source):
                self.assertAlmostEqual(self._eval(source), expected, places=14)

    def test_division_by_zero(self) -> None:
        self.assertEqual(self._eval("1/0"), math.inf)
        self.assertEqual(self._eval("-1/0"), -math.inf)
        self.assertTrue(math.isnan(self._eval("0/0")))
        self.assertEqual(self._eval("a/b", a=1, b=0), math.inf)
        self.assertEqual(self._eval("a/b", a=-1, b=0), -math.inf)
        self.assertTrue(math.isnan(self._eval("a/b", a=0, b=0)))

    def test_factorial_domain(self) -> None:
        self.assertEqual(self._eval("5!"), 120.0)
        self.assertEqual(self._eval("0!"), 1.0)
        self.assertEqual(self._eval("20!"), float(math.factorial(20)))
        self.assertTrue(math.isnan(self._eval("3.5!")))
        self.assertTrue(math.isnan(self._eval("(-1)!")))
        self.assertEqual(self._eval("171!"), math.inf)
        self.assertEqual(self._eval("x!", x=1e12), math.inf)
        self.assertTrue(math.isnan(self._eval("x!", x=-2)))
        self.assertEqual(self._eval("x!", x=6), 720.0)

    def test_factorial_of_huge_fraction_is_nan(self) -> None:
        self.assertTrue(math.isnan(self._eval("x!", x=2147483647.5)))
        self.assertTrue(math.isnan(self._eval("x!", x=math.inf)))
        self.assertTrue(math.isnan(self._eval("inf!")))
        self.assertEqual(self._eval("x!", x=2147483648.0), math.inf)

    def test_numeric_domain_anomalies_do_not_raise(self) -> None:
        self.assertTrue(math.isnan(self._eval("sqrt(-1)")))
        self.assertTrue(math.isnan(self._eval("log(-1)")))
        self.assertEqual(self._eval("log 0"), -math.inf)
        self.assertTrue(math.isnan(self._eval("asin 2")))
        self.assertTrue(math.isnan(self._eval("acos(-2)")))
        self.assertTrue(math.isnan(self._eval("(-8)^(1/3)")))
        self.assertEqual(self._eval("10^400"), math.inf)
        self.assertEqual(self._eval("x^y", x=0, y=-1), math.inf)

    def test_builtin_constants(self) -> None:
        self.assertEqual(self._eval("pi"), math.pi)
        self.assertEqual(self._eval("e"), math.e)
        self.assertEqual(self._eval("inf"), math.inf)
        self.assertTrue(math.isnan(self._eval("NaN")))
        self.assertEqual(self._eval("Epsilon"), 5e-324)
        self.assertEqual(self._eval("MaxValue"), sys.float_info.max)
        self.assertEqual(self._eval("MinValue"), -sys.float_info.max)
        self.assertEqual(self._eval("MaxValue*2"), math.inf)
        self.assertAlmostEqual(self._eval("cos pi"), -1.0, places=15)

    def test_unbound_variable_evaluates_to_nan(self) -> None:
        self.assertTrue(math.isnan(self._eval("x+1")))

    def test_evaluate_is_idempotent_and_deterministic(self) -> None:
        for source in ("2+3*4", "sin 1 / 3", "0/0", "2^0.5", "171!", "pi*e"):
            with self.subTest(source=source):
                expr = Expression(source)
                first = expr.evaluate()
                second = expr.evaluate()
                self.assertEqual(_bits(first), _bits(second))

    def test_constant_folding_is_transparent(self) -> None:
        sources = ["2+3*4", "sqrt 2 * 3", "-2^3", "1/3+1/7", "sin 1 ^ cos 2", "(1+2)!/7", "log 3 - atan 9"]
        for source in sources:
            with self.subTest(source=source):
                folded = Expression(source, fold_constants=True).evaluate()
                plain = Expression(source, fold_constants=False).evaluate()
                self.assertEqual(_bits(folded), _bits(plain))

    def test_literal_and_variable_forms_agree(self) -> None:
        literal = Expression("2+3*4").evaluate()
        variable = Expression("a+b*c")
        variable.set("a", 2)
        variable.set("b", 3)
        variable.set("c", 4)
        self.assertEqual(_bits(literal), _bits(variable.evaluate()))

        literal = Expression("sqrt 2 / 3 ^ 1.5").evaluate()
        variable = Expression("sqrt x / y ^ z")
        variable.set("x", 2)
        variable.set("y", 3)
        variable.set("z", 1.5)
        self.assertEqual(_bits(literal), _bits(variable.evaluate()))


class VariableBindingTests(unittest.TestCase):
    def test_mutation_between_evaluations(self) -> None:
        expr = Expression("a+b")
        expr.set("a", 1)
        expr.set("b", 2)
        self.assertEqual(expr.evaluate(), 3.0)
        expr.set("a", 10)
        self.assertEqual(expr.evaluate(), 12.0)

    def test_repeated_variable_shares_one_slot(self) -> None:
        expr = Expression("x*x + x")
        expr.set("x", 3)
        self.assertEqual(expr.evaluate(), 12.0)
        expr.set("x", -1)
        self.assertEqual(expr.evaluate(), 0.0)

    def test_set_unknown_name_is_ignored(self) -> None:
        expr = Expression("a+1")
        expr.set("a", 1)
        expr.set("zzz", 5)
        self.assertEqual(expr.evaluate(), 2.0)
        self.assertNotIn("zzz", expr.variables)

    def test_get_known_and_unknown(self) -> None:
        expr = Expression("a+1")
        self.assertTrue(math.isnan(expr.get("a")))
        expr.set("a", 4)
        self.assertEqual(expr.get("a"), 4.0)
        self.assertEqual(expr.get("pi"), math.pi)
        with self.assertRaises(UnknownVariableError) as ctx:
            expr.get("zzz")
        self.assertEqual(ctx.exception.name, "zzz")
        self.assertIsInstance(ctx.exception, KeyError)

    def test_lookup_is_the_non_raising_accessor(self) -> None:
        expr = Expression("a")
        expr.set("a", 2)
        self.assertEqual(expr.lookup("a"), 2.0)
        self.assertIsNone(expr.lookup("b"))

    def test_builtins_can_be_rebound_per_instance(self) -> None:
        expr = Expression("pi*2")
        expr.set("pi", 3)
        self.assertEqual(expr.evaluate(), 6.0)
        self.assertEqual(Expression("pi").evaluate(), math.pi)

    def test_call_binds_then_evaluates(self) -> None:
        expr = Expression("x^2 + y")
        self.assertEqual(expr(x=3, y=1), 10.0)
        self.assertEqual(expr(y=2), 11.0)
        self.assertEqual(expr(unused=7), 11.0)

    def test_instances_do_not_share_variables(self) -> None:
        first = Expression("q+1")
        second = Expression("q+1")
        first.set("q", 1)
        self.assertEqual(first.evaluate(), 2.0)
        self.assertTrue(math.isnan(second.get("q")))

    def test_free_variables_exclude_builtins(self) -> None:
        expr = Expression("y + x*x*pi - e")
        self.assertEqual(expr.free_variables, ("y", "x"))

    def test_source_is_retained(self) -> None:
        self.assertEqual(Expression(" 1 + x ").source, " 1 + x ")


class ConstructionFailureTests(unittest.TestCase):
    def test_malformed_input_fails_construction(self) -> None:
        for source in ("(1+2", "1+2)", "1..", "1+"):
            with self.subTest(source=source):
                with self.assertRaises(ExpressionCompileError):
                    Expression(source)

    def test_try_compile_reports_instead_of_raising(self) -> None:
        bad = try_compile("1+")
        self.assertFalse(bad.ok)
        self.assertIsNone(bad.expression)
        self.assertIsInstance(bad.error, ExpressionCompileError)

        good = try_compile("1+x")
        self.assertTrue(good.ok)
        self.assertIsNone(good.error)
        good.expression.set("x", 1)
        self.assertEqual(good.expression.evaluate(), 2.0)

    def test_failure_is_not_cached(self) -> None:
        with self.assertRaises(ExpressionCompileError):
            Expression("(x")
        with self.assertRaises(ExpressionCompileError):
            Expression("(x")


if __name__ == "__main__":
    unittest.main()
