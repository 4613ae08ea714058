"""
Tests for the KKT node graph, residual and Jacobian.
"""

import math

import numpy as np
import pytest

from kktmaxent.errors import InfeasibleConstraintsError
from kktmaxent.kkt.model import EntropyKKTModel
from kktmaxent.kkt.nodes import (
    JointProbability,
    MarginalConsistency,
    NodeKind,
    NormalizationMultiplier,
)
from kktmaxent.model.constraints import (
    ConstraintSet,
    PairwiseExclusion,
    UnaryExclusion,
    VarAndValue,
)


def chain(k, *unary):
    contras = [PairwiseExclusion(0, 1), PairwiseExclusion(1, 2)]
    contras += [UnaryExclusion(VarAndValue(var, value)) for var, value in unary]
    return ConstraintSet(3, k, contras)


class TestSinglePair:
    """Two variables, two values, one pairwise exclusion."""

    @pytest.fixture
    def model(self):
        return EntropyKKTModel(ConstraintSet(2, 2, [PairwiseExclusion(0, 1)]))

    def test_layout(self, model):
        assert model.size == 3
        assert model.joint_count == 2
        assert model.nodes[0] == JointProbability(
            VarAndValue(0, 0), VarAndValue(1, 1), frozenset({2}), frozenset()
        )
        assert model.nodes[1].first == VarAndValue(0, 1)
        assert isinstance(model.nodes[2], NormalizationMultiplier)
        assert model.nodes[2].members == (0, 1)
        assert [node.kind for node in model.nodes] == [
            NodeKind.JOINT, NodeKind.JOINT, NodeKind.NORMALIZATION,
        ]

    def test_residual_at_start(self, model):
        x = model.initial_point()
        expected = math.log(0.5) + 1.5

        assert np.allclose(model.residual(x), [expected, expected, 0.0])

    def test_jacobian_at_start(self, model):
        jac = model.jacobian(model.initial_point())

        assert np.allclose(jac, [[2.0, 0.0, 1.0], [0.0, 2.0, 1.0], [1.0, 1.0, 0.0]])

    def test_max_step(self, model):
        x = model.initial_point()

        assert model.max_step(x, np.array([1.0, 0.0, 0.0])) == pytest.approx(0.495)
        assert model.max_step(x, np.array([0.1, -1.0, 5.0])) == 1.0

    def test_joint_halves(self, model):
        node = model.nodes[0]
        assert node.half(1) == VarAndValue(1, 1)
        assert node.other(1) == VarAndValue(0, 0)
        with pytest.raises(KeyError):
            node.half(5)


class TestChain:
    @pytest.fixture
    def model(self):
        return EntropyKKTModel(chain(3))

    def test_node_counts(self, model):
        kinds = [node.kind for node in model.nodes]

        assert model.joint_count == 12
        assert kinds.count(NodeKind.NORMALIZATION) == 2
        assert kinds.count(NodeKind.CONSISTENCY) == 6
        assert model.size == 20

    def test_nodes_ordered_by_kind(self, model):
        kinds = [node.kind.value for node in model.nodes]
        assert kinds == sorted(kinds)

    def test_consistency_pairs_are_ordered(self, model):
        consistency = [n for n in model.nodes if isinstance(n, MarginalConsistency)]
        pairs = {(n.positive, n.negative) for n in consistency}

        for pos, neg in pairs:
            assert (neg, pos) in pairs

    def test_joints_are_leading_block(self, model):
        joints = model.joints()

        assert [i for i, _ in joints] == list(range(model.joint_count))
        assert all(node.kind is NodeKind.JOINT for _, node in joints)

    def test_back_links(self, model):
        for i, node in model.joints():
            for j in node.normalizers:
                assert i in model.nodes[j].positive
            for j in node.negated:
                assert i in model.nodes[j].negative

    def test_jacobian_symmetric(self, model):
        x = np.random.default_rng(0).uniform(0.1, 1.0, model.size)
        jac = model.jacobian(x)

        assert np.allclose(jac, jac.T)

    def test_jacobian_matches_finite_differences(self, model):
        x = np.random.default_rng(1).uniform(0.2, 1.0, model.size)
        h = 1e-6

        numeric = np.empty((model.size, model.size))
        for j in range(model.size):
            step = np.zeros(model.size)
            step[j] = h
            numeric[:, j] = (model.residual(x + step) - model.residual(x - step)) / (2 * h)

        assert np.allclose(model.jacobian(x), numeric, atol=1e-5)

    def test_no_fixed_marginals(self, model):
        assert model.fixed_marginals == {}


class TestPruning:
    def test_unsupported_values_removed(self):
        # x2 = 0 is forced, so x1 = 0 has no partner value through (1, 2)
        model = EntropyKKTModel(chain(3, (2, 1), (2, 2)))

        assert model.joint_count == 6
        values = {node.half(1).value for _, node in model.joints()}
        assert values == {1, 2}

    def test_single_value_pair_infeasible(self):
        with pytest.raises(InfeasibleConstraintsError):
            EntropyKKTModel(ConstraintSet(2, 1, [PairwiseExclusion(0, 1)]))

    def test_forced_equal_values_infeasible(self):
        cset = ConstraintSet(
            2, 2,
            [PairwiseExclusion(0, 1), UnaryExclusion(VarAndValue(0, 1)), UnaryExclusion(VarAndValue(1, 1))],
        )
        with pytest.raises(InfeasibleConstraintsError):
            EntropyKKTModel(cset)


class TestFixedMarginals:
    def test_unpaired_variable_uniform(self):
        model = EntropyKKTModel(ConstraintSet(3, 3, [PairwiseExclusion(0, 1)]))

        assert model.fixed_marginals == {
            VarAndValue(2, 0): pytest.approx(1 / 3),
            VarAndValue(2, 1): pytest.approx(1 / 3),
            VarAndValue(2, 2): pytest.approx(1 / 3),
        }

    def test_unary_only(self):
        model = EntropyKKTModel(ConstraintSet(1, 3, [UnaryExclusion(VarAndValue(0, 1))]))

        assert model.size == 0
        assert model.fixed_marginals == {VarAndValue(0, 0): 0.5, VarAndValue(0, 2): 0.5}

    def test_all_values_excluded(self):
        cset = ConstraintSet(1, 2, [UnaryExclusion(VarAndValue(0, 0)), UnaryExclusion(VarAndValue(0, 1))])
        with pytest.raises(InfeasibleConstraintsError):
            EntropyKKTModel(cset)
