# This file is part of fd_normal_form.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (http://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

import itertools
import random
import unittest

from fdnf import (
    EmptyDeterminantError,
    Key,
    KeySet,
    Relation,
    RelationBuilder,
    UnexpectedAttributeError,
)


def _relation(*dependencies: str, forced_attributes=None) -> Relation[str]:
    """Build a relation from strings like ``"bc->a"``."""
    pairs = [tuple(d.split("->")) for d in dependencies]
    return Relation.from_dependencies(pairs, forced_attributes)


class RelationBuilderTestCase(unittest.TestCase):
    """Tests for RelationBuilder."""

    def test_add_dependency(self):
        builder = RelationBuilder()
        builder.add_dependency("a", "bc").add_dependency(["b", "d"], ["c"])
        self.assertEqual(builder.attributes, set("abcd"))
        relation = builder.build()
        self.assertEqual(relation.attributes, set("abcd"))
        self.assertEqual(relation.data["b"], {Key("a")})
        self.assertEqual(relation.data["c"], {Key("a"), Key("bd")})
        self.assertNotIn("a", relation.data)
        self.assertIsNone(relation.forced_attributes)

    def test_duplicate_dependency(self):
        self.assertEqual(_relation("a->b"), _relation("a->b", "a->b"))

    def test_empty_determinant(self):
        builder = RelationBuilder()
        builder.add_dependency("a", "b")
        before = builder.build()
        with self.assertRaises(EmptyDeterminantError):
            builder.add_dependency((), "c")
        with self.assertRaises(EmptyDeterminantError):
            builder.add_dependency((), ())
        self.assertEqual(builder.attributes, {"a", "b"})
        self.assertEqual(builder.build(), before)

    def test_unexpected_attribute(self):
        builder = RelationBuilder("abc")
        self.assertEqual(builder.forced_attributes, set("abc"))
        with self.assertRaises(UnexpectedAttributeError) as cm:
            builder.add_dependency("a", "d")
        self.assertEqual(cm.exception.attributes, {"d"})
        self.assertIn("d", str(cm.exception))
        self.assertEqual(builder.attributes, set("abc"))
        self.assertEqual(dict(builder.build().data), {})

    def test_unexpected_attributes_in_both_sides(self):
        builder = RelationBuilder("abc")
        with self.assertRaises(UnexpectedAttributeError) as cm:
            builder.add_dependency("ax", "by")
        self.assertEqual(cm.exception.attributes, {"x", "y"})

    def test_forced_attributes_without_dependencies(self):
        relation = RelationBuilder("abc").add_dependency("a", "b").build()
        self.assertEqual(relation.attributes, set("abc"))
        self.assertEqual(relation.forced_attributes, set("abc"))
        self.assertEqual(relation.dependencies_to("c"), KeySet())

    def test_add_relation(self):
        other = _relation("a->b", "bc->a")
        builder = RelationBuilder().add_dependency("c", "d")
        builder.add_relation(other)
        relation = builder.build()
        self.assertEqual(relation.attributes, set("abcd"))
        self.assertEqual(relation.data["a"], {Key("bc")})
        self.assertEqual(relation.data["b"], {Key("a")})
        self.assertEqual(relation.data["d"], {Key("c")})

    def test_add_relation_rejected(self):
        other = _relation("a->b", "c->d")
        builder = RelationBuilder("abc")
        with self.assertRaises(UnexpectedAttributeError) as cm:
            builder.add_relation(other)
        self.assertEqual(cm.exception.attributes, {"d"})
        self.assertEqual(dict(builder.build().data), {})

    def test_build_is_snapshot(self):
        builder = RelationBuilder().add_dependency("a", "b")
        relation = builder.build()
        builder.add_dependency("b", "c")
        self.assertEqual(relation.attributes, {"a", "b"})
        self.assertNotIn("c", relation.data)

    def test_from_dependencies_rejects(self):
        with self.assertRaises(UnexpectedAttributeError):
            _relation("a->d", forced_attributes="abc")
        with self.assertRaises(EmptyDeterminantError):
            Relation.from_dependencies([((), "a")])


class RelationTestCase(unittest.TestCase):
    """Tests for Relation queries and closures."""

    def test_immutable(self):
        relation = _relation("a->b")
        with self.assertRaises(AttributeError):
            relation._data = {}
        with self.assertRaises(TypeError):
            relation.data["c"] = KeySet()

    def test_dependencies_of(self):
        relation = _relation("a->b", "bc->a")
        self.assertEqual(relation.dependencies_of("a"), {"b"})
        self.assertEqual(relation.dependencies_of("bc"), {"a"})
        self.assertEqual(relation.dependencies_of("abc"), {"a", "b"})
        self.assertEqual(relation.dependencies_of("c"), set())

    def test_dependencies_to(self):
        relation = _relation("a->b")
        self.assertEqual(relation.dependencies_to("a"), KeySet())
        self.assertEqual(relation.dependencies_to("b"), {Key("a")})
        self.assertIsNone(relation.dependencies_to("z"))

    def test_compact(self):
        relation = _relation("a->bc", "b->c", "ab->c")
        self.assertEqual(
            relation.compact(),
            {Key("a"): {"b", "c"}, Key("b"): {"c"}, Key("ab"): {"c"}},
        )

    def test_str(self):
        relation = _relation("a->b", "bc->a")
        self.assertEqual(str(relation), "[a] -> [b]\n[b, c] -> [a]")
        self.assertEqual(relation.str_simple(), "[a] -> b\n[b, c] -> a")

    def test_reflexive(self):
        relation = _relation("a->b", "bc->a").reflexive()
        self.assertEqual(relation.data["a"], {Key("a"), Key("bc")})
        self.assertEqual(relation.data["b"], {Key("b"), Key("a")})
        self.assertEqual(relation.data["c"], {Key("c")})
        self.assertEqual(relation.attributes, set("abc"))

    def test_transitive_closure(self):
        closure = _relation("a->b", "bc->a").transitive_closure()
        self.assertEqual(closure.data["a"], {Key("bc"), Key("ac")})
        self.assertEqual(closure.data["b"], {Key("a"), Key("bc"), Key("ac")})
        self.assertNotIn("c", closure.data)
        self.assertEqual(closure.attributes, set("abc"))

    def test_transitive_closure_reflexive(self):
        closure = _relation("a->b", "bc->a").transitive_closure_reflexive()
        self.assertEqual(closure.data["a"], {Key("a"), Key("bc"), Key("ac")})
        self.assertEqual(closure.data["b"], {Key("b"), Key("a"), Key("bc"), Key("ac")})
        self.assertEqual(closure.data["c"], {Key("c")})

    def test_closure_does_not_modify_input(self):
        relation = _relation("a->b", "b->c")
        before = dict(relation.data)
        relation.transitive_closure_reflexive()
        self.assertEqual(dict(relation.data), before)

    def test_closure_idempotent(self):
        for dependencies in [
            ("a->b", "bc->a"),
            ("ab->c", "b->c"),
            ("a->b", "a->c", "a->d", "c->d"),
            ("a->bc", "b->c", "ab->c"),
        ]:
            with self.subTest(dependencies=dependencies):
                closure = _relation(*dependencies).transitive_closure_reflexive()
                self.assertEqual(closure.transitive_closure_reflexive(), closure)

    def test_closure_idempotent_through_closed_determinants(self):
        closure = _relation("c->b", "bc->ae", "b->e", "ead->b").transitive_closure_reflexive()
        self.assertIn(Key("abcde"), closure.data["a"])
        self.assertEqual(closure.transitive_closure_reflexive(), closure)
        self.assertEqual(closure.transitive_closure(), closure)

    def test_closure_order_independent(self):
        dependencies = ("a->b", "a->c", "c->d", "bd->e")
        expected = _relation(*dependencies).transitive_closure_reflexive()
        for permutation in itertools.permutations(dependencies):
            with self.subTest(order=permutation):
                self.assertEqual(_relation(*permutation).transitive_closure_reflexive(), expected)

    def test_closure_transitive_chain(self):
        closure = _relation("a->b", "b->c", "c->d").transitive_closure_reflexive()
        self.assertEqual(closure.data["d"], {Key("d"), Key("c"), Key("b"), Key("a")})
        self.assertEqual(closure.dependencies_of("a"), set("abcd"))
        self.assertEqual(closure.dependencies_of("c"), {"c", "d"})

    def test_dependencies_of_monotonic(self):
        closure = _relation("a->bc", "be->ad", "bc->ae").transitive_closure_reflexive()
        attributes = sorted(closure.attributes)
        for size in range(1, len(attributes)):
            for subset in itertools.combinations(attributes, size):
                for extra in set(attributes) - set(subset):
                    with self.subTest(subset=subset, extra=extra):
                        self.assertLessEqual(
                            closure.dependencies_of(subset), closure.dependencies_of(subset + (extra,))
                        )

    def test_equality(self):
        self.assertEqual(_relation("a->b", "c->b"), _relation("c->b", "a->b"))
        self.assertNotEqual(_relation("a->b"), _relation("b->a"))
        self.assertEqual(hash(_relation("a->bc")), hash(_relation("a->c", "a->b")))


class RandomRelationTestCase(unittest.TestCase):
    """Closure properties checked over seeded random relations."""

    attributes = "abcde"

    def random_dependencies(self, rng: random.Random, n: int = 4) -> list[tuple[str, str]]:
        dependencies = []
        for _ in range(n):
            key = "".join(rng.sample(self.attributes, rng.randint(1, 3)))
            dependents = "".join(rng.sample(self.attributes, rng.randint(1, 2)))
            dependencies.append((key, dependents))
        return dependencies

    def test_closure_idempotent(self):
        rng = random.Random(1729)
        for _ in range(300):
            dependencies = self.random_dependencies(rng)
            with self.subTest(dependencies=dependencies):
                closure = Relation.from_dependencies(dependencies).transitive_closure_reflexive()
                self.assertEqual(closure.transitive_closure_reflexive(), closure)

    def test_closure_order_independent(self):
        rng = random.Random(4104)
        for _ in range(100):
            dependencies = self.random_dependencies(rng, rng.randint(2, 6))
            expected = Relation.from_dependencies(dependencies).transitive_closure_reflexive()
            for _ in range(3):
                shuffled = rng.sample(dependencies, len(dependencies))
                with self.subTest(dependencies=shuffled):
                    self.assertEqual(
                        Relation.from_dependencies(shuffled).transitive_closure_reflexive(), expected
                    )

    def test_solver_agrees_on_closure(self):
        rng = random.Random(2718)
        for _ in range(100):
            relation = Relation.from_dependencies(self.random_dependencies(rng))
            closed = relation.transitive_closure_reflexive()
            with self.subTest(relation=str(relation)):
                self.assertEqual(closed.solve().candidate_keys, relation.solve().candidate_keys)
                self.assertEqual(closed.solve().normal_form, relation.solve().normal_form)


if __name__ == "__main__":
    unittest.main()
