import random
import unittest

from datafitter_pkg.config import SearchConfig
from datafitter_pkg.symbolic_regression.expression_tree import ExpressionNode
from datafitter_pkg.symbolic_regression.params import Candidate
from datafitter_pkg.symbolic_regression.params import Param
from datafitter_pkg.symbolic_regression.params import Params
from datafitter_pkg.symbolic_regression.parser import parse
from datafitter_pkg.symbolic_regression.simplifier import simplify
from datafitter_pkg.symbolic_regression.simplifier import simplify_expression


def _simplified(text):
    return simplify_expression(parse(text))


class TestRewriteRules(unittest.TestCase):
    def test_constant_folding(self):
        self.assertEqual(_simplified("2 + 3"), ExpressionNode.constant(5.0))
        self.assertEqual(_simplified("sqrt(4) * x"), parse("2 * x"))

    def test_non_finite_folds_are_kept(self):
        self.assertEqual(_simplified("1/0"), parse("1/0"))
        self.assertEqual(_simplified("ln(0) + x"), parse("ln(0) + x"))

    def test_identities(self):
        cases = {
            "x + 0": "x",
            "0 + x": "x",
            "x - 0": "x",
            "x * 1": "x",
            "1 * x": "x",
            "x / 1": "x",
            "x ^ 1": "x",
            "x * 0": "0",
            "0 * sin(x)": "0",
            "x ^ 0": "1",
            "0 - x": "-x",
        }
        for text, expected in cases.items():
            with self.subTest(text=text):
                self.assertEqual(_simplified(text), parse(expected))

    def test_double_negation(self):
        self.assertEqual(_simplified("-(-x)"), parse("x"))

    def test_negated_constant(self):
        node = ExpressionNode.unary("neg", ExpressionNode.constant(2.0))
        self.assertEqual(simplify_expression(node), ExpressionNode.constant(-2.0))

    def test_nested_rules_reach_fixpoint(self):
        self.assertEqual(_simplified("(x * 1 + 0) ^ (3 - 2)"), parse("x"))

    def test_add_chain_constants_merge(self):
        self.assertEqual(_simplified("x + 2 + 3"), parse("x + 5"))

    def test_mul_chain_constants_merge(self):
        self.assertEqual(_simplified("2 * x * 3"), parse("6 * x"))

    def test_chain_parameters_are_kept(self):
        cases = ["a + x + b", "a * (b * x)", "(a + b) * b", "2 * a * b * 3"]
        for text in cases:
            with self.subTest(text=text):
                result = _simplified(text)
                self.assertEqual(result.parameter_names(), parse(text).parameter_names())

    def test_chain_constants_merge_around_parameters(self):
        self.assertEqual(_simplified("2 * a * b * 3"), parse("6 * a * b"))

    def test_input_is_not_modified(self):
        original = parse("x + 0")
        simplify_expression(original)
        self.assertEqual(original, parse("x + 0"))


class TestSimplifyCandidate(unittest.TestCase):
    def test_unused_parameters_dropped_and_renamed(self):
        candidate = Candidate(
            parse("c*x + 0*q"), Params([Param("c", 1.5), Param("q", 2.0)])
        )
        result = simplify(candidate)
        self.assertEqual(result.expression, parse("a*x"))
        self.assertEqual(result.params.as_dict(), {"a": 1.5})

    def test_canonical_order_keeps_values(self):
        candidate = Candidate(
            parse("d + x*b"), Params([Param("b", 2.0), Param("d", 1.0)])
        )
        result = simplify(candidate)
        self.assertEqual(result.expression, parse("a + x*b"))
        self.assertEqual(result.params.names(), ["a", "b"])
        self.assertEqual(result.params.as_dict(), {"a": 1.0, "b": 2.0})

    def test_product_of_parameters_keeps_its_range(self):
        candidate = Candidate(parse("a*b*x"), Params([Param("a", 4.0), Param("b", 5.0)]))
        result = simplify(candidate)
        self.assertEqual(result.params.as_dict(), {"a": 4.0, "b": 5.0})
        self.assertEqual(result.evaluate(3.0), 60.0)

    def test_candidate_method_delegates(self):
        candidate = Candidate(parse("z + 0"), Params([Param("z", 0.5)]))
        self.assertEqual(candidate.simplify().to_string(), "a")

    def test_idempotent_and_non_increasing_on_generated(self):
        config = SearchConfig()
        rng = random.Random(1234)
        for _ in range(200):
            candidate = Candidate.generate(rng, config)
            once = simplify(candidate)
            twice = simplify(once)
            self.assertEqual(twice.expression, once.expression)
            self.assertEqual(twice.params, once.params)
            self.assertLessEqual(
                once.expression.count_nodes(), candidate.expression.count_nodes()
            )
            self.assertLessEqual(len(once.params), len(candidate.params))
            self.assertEqual(once.expression.parameter_names(), once.params.names())


if __name__ == "__main__":
    unittest.main()
