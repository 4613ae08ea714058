"""
Tests for the constraint model.
"""

import pytest

from kktmaxent.errors import InvalidConstraintError
from kktmaxent.model.constraints import (
    ConstraintSet,
    PairwiseExclusion,
    UnaryExclusion,
    VarAndValue,
)


class TestValueTypes:
    def test_var_and_value_equality(self):
        assert VarAndValue(1, 2) == VarAndValue(1, 2)
        assert hash(VarAndValue(1, 2)) == hash(VarAndValue(1, 2))
        assert VarAndValue(1, 2) != VarAndValue(2, 1)

    def test_enumerate(self):
        items = list(VarAndValue.enumerate(1, 3, 2))
        assert items == [
            VarAndValue(1, 0),
            VarAndValue(1, 1),
            VarAndValue(2, 0),
            VarAndValue(2, 1),
        ]

    def test_pairwise_canonical_order(self):
        contra = PairwiseExclusion(2, 1)
        assert contra.first == 1
        assert contra.second == 2
        assert contra == PairwiseExclusion(1, 2)
        assert hash(contra) == hash(PairwiseExclusion(1, 2))


class TestConstraintSet:
    @pytest.fixture
    def chain(self):
        contras = [
            UnaryExclusion(VarAndValue(0, 4)),
            UnaryExclusion(VarAndValue(1, 1)),
            PairwiseExclusion(0, 1),
            PairwiseExclusion(1, 2),
        ]
        return ConstraintSet(3, 25, contras)

    def test_deduplicates(self):
        contras = [
            PairwiseExclusion(0, 1),
            PairwiseExclusion(1, 0),
            UnaryExclusion(VarAndValue(0, 1)),
            UnaryExclusion(VarAndValue(0, 1)),
        ]
        cset = ConstraintSet(2, 3, contras)

        assert len(cset) == 2
        assert cset.required_joints() == [(0, 1)]

    def test_required_joints_in_discovery_order(self):
        cset = ConstraintSet(4, 2, [PairwiseExclusion(3, 2), PairwiseExclusion(0, 1)])
        assert cset.required_joints() == [(2, 3), (0, 1)]

    def test_constrained_variables(self, chain):
        assert chain.constrained_variables() == [0, 1, 2]

    def test_partners(self, chain):
        assert chain.partners(0) == [1]
        assert chain.partners(1) == [0, 2]
        assert chain.partners(2) == [1]

    def test_allowed_values(self, chain):
        allowed = chain.allowed_values(0)
        assert 4 not in allowed
        assert len(allowed) == 24
        assert len(chain.allowed_values(2)) == 25

    def test_is_excluded_equal_values(self, chain):
        assert chain.is_excluded(0, 3, 1, 3)
        assert chain.is_excluded(1, 3, 0, 3)  # either order
        assert not chain.is_excluded(0, 3, 1, 5)
        # No PairwiseExclusion between 0 and 2
        assert not chain.is_excluded(0, 3, 2, 3)

    def test_is_excluded_unary(self, chain):
        assert chain.is_excluded(0, 4, 1, 7)
        assert chain.is_excluded(2, 7, 1, 1)
        assert not chain.is_excluded(0, 5, 1, 7)

    def test_contains(self, chain):
        assert PairwiseExclusion(2, 1) in chain
        assert UnaryExclusion(VarAndValue(0, 4)) in chain
        assert UnaryExclusion(VarAndValue(0, 5)) not in chain


class TestValidation:
    def test_variable_out_of_range(self):
        with pytest.raises(InvalidConstraintError):
            ConstraintSet(2, 3, [UnaryExclusion(VarAndValue(2, 0))])

    def test_value_out_of_range(self):
        with pytest.raises(InvalidConstraintError):
            ConstraintSet(2, 3, [UnaryExclusion(VarAndValue(0, 3))])

    def test_pair_out_of_range(self):
        with pytest.raises(InvalidConstraintError):
            ConstraintSet(2, 3, [PairwiseExclusion(0, 5)])

    def test_self_pair(self):
        with pytest.raises(InvalidConstraintError):
            ConstraintSet(2, 3, [PairwiseExclusion(1, 1)])

    def test_bad_sizes(self):
        with pytest.raises(InvalidConstraintError):
            ConstraintSet(-1, 3)
        with pytest.raises(InvalidConstraintError):
            ConstraintSet(2, 0)

    def test_unknown_constraint(self):
        with pytest.raises(InvalidConstraintError):
            ConstraintSet(2, 3, [(0, 1)])

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            ConstraintSet(2, 3, [UnaryExclusion(VarAndValue(5, 0))])
