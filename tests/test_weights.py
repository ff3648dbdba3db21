"""符号制約フィルタと重点重み・ヤコビアン戦略のテスト"""

import numpy as np
import pytest

from bayesian_svar.core.irf import impulse_responses
from bayesian_svar.core.jacobian import AnalyticFirst, CentralDifference, make_strategy
from bayesian_svar.core.mapper import ReducedFormDraw, StructuralDraw, StructuralMapper
from bayesian_svar.core.parameter_mapping import StructuralParameterMapping, ZeroRestrictionMap
from bayesian_svar.estimation.data_fetcher import SyntheticSVARGenerator, random_walk_example
from bayesian_svar.estimation.posterior import ReducedFormSampler, compute_posterior
from bayesian_svar.estimation.priors import PriorSpec
from bayesian_svar.identification.orthogonal import RestrictedOrthogonalSampler
from bayesian_svar.identification.restrictions import RestrictionKind, RestrictionSet
from bayesian_svar.identification.weights import SignFilterAndWeighter


@pytest.fixture(scope="module")
def reduced_sampler() -> ReducedFormSampler:
    structural, _ = random_walk_example()
    data = SyntheticSVARGenerator().simulate(structural, n_periods=200, rng=np.random.default_rng(42))
    posterior = compute_posterior(data.Y, data.X, PriorSpec.diffuse(2, 3))
    return ReducedFormSampler(posterior)


class TestJacobianStrategies:
    """ヤコビアン戦略のテスト"""

    def test_central_difference_linear_map(self) -> None:
        A = np.array([[1.0, 2.0, 0.0], [0.0, -1.0, 3.0]])
        jac = CentralDifference().jacobian(lambda x: A @ x, np.array([0.5, -1.0, 2.0]))
        np.testing.assert_allclose(jac, A, atol=1e-8)

    def test_analytic_zero_map_matches_numerical(self) -> None:
        """ゼロ制約写像の解析的ヤコビアンと中心差分が一致する"""
        rng = np.random.default_rng(3)
        mapping = StructuralParameterMapping(n_vars=3, n_regressors=4)
        zero = np.array([[1, 1, 0], [1, 0, 0], [0, 0, 0]])
        zero_map = ZeroRestrictionMap(mapping, zero)
        structural = StructuralDraw(
            A0=rng.standard_normal((3, 3)) + 3.0 * np.eye(3),
            A_plus=rng.standard_normal((4, 3)),
        )
        x = mapping.to_vector(structural)

        analytic = AnalyticFirst().jacobian(zero_map, x)
        numerical = CentralDifference().jacobian(zero_map, x)
        assert analytic.shape == (3, mapping.n_params)
        np.testing.assert_allclose(analytic, numerical, atol=1e-6)

    def test_zero_map_values(self) -> None:
        """制約 (i, j) の値は (A0^{-1})'[i, j]"""
        mapping = StructuralParameterMapping(n_vars=2, n_regressors=3)
        zero_map = ZeroRestrictionMap(mapping, np.array([[0, 0], [1, 0]]))
        A0 = np.array([[2.0, 1.0], [0.5, 3.0]])
        x = mapping.to_vector(StructuralDraw(A0=A0, A_plus=np.zeros((3, 2))))
        np.testing.assert_allclose(zero_map(x), [np.linalg.inv(A0).T[1, 0]])

    def test_make_strategy(self) -> None:
        assert isinstance(make_strategy("central"), CentralDifference)
        assert isinstance(make_strategy("analytic"), AnalyticFirst)
        with pytest.raises(ValueError):
            make_strategy("automatic")


class TestSignFilter:
    """符号判定のテスト"""

    def test_never_accepts_mismatch(self, reduced_sampler) -> None:
        """通過したドローは全符号制約を厳密に満たす"""
        sign = np.zeros((2, 2, 3))
        sign[:, :, 0] = [[1, 1], [1, -1]]
        sign[0, 0, 2] = 1
        restrictions = RestrictionSet.build(2, sign_irf=sign)
        weighter = SignFilterAndWeighter(restrictions, n_regressors=3)
        orthogonal = RestrictedOrthogonalSampler(restrictions)
        rng = np.random.default_rng(9)

        accepted = 0
        for _ in range(200):
            reduced = reduced_sampler.draw(rng)
            Q = orthogonal.draw(reduced, rng)
            draw = weighter.evaluate(reduced, Q, normalize=False)
            irf = impulse_responses(StructuralMapper().forward(reduced, Q), 2)
            values = sign * irf
            if draw is None:
                assert not np.all(values[sign != 0] > 0)
            else:
                accepted += 1
                assert np.all(values[sign != 0] > 0)
        assert accepted > 0

    def test_normalization_flips_first_restricted_cell(self) -> None:
        restrictions = RestrictionSet.build(2, sign_irf=[[0, 1], [1, 1]])
        weighter = SignFilterAndWeighter(restrictions, n_regressors=3)
        irf = np.zeros((2, 2, 1))
        irf[:, :, 0] = [[0.2, -1.0], [-0.5, -0.3]]
        np.testing.assert_array_equal(weighter.normalization_signs(irf), [-1.0, -1.0])

        irf[:, :, 0] = [[0.2, 1.0], [0.5, -0.3]]
        np.testing.assert_array_equal(weighter.normalization_signs(irf), [1.0, 1.0])

    def test_normalization_keeps_zero_restrictions(self, reduced_sampler) -> None:
        restrictions = RestrictionSet.build(2, zero_irf=[[1, 0], [0, 0]], sign_irf=[[0, 1], [1, 1]])
        weighter = SignFilterAndWeighter(restrictions, n_regressors=3)
        orthogonal = RestrictedOrthogonalSampler(restrictions)
        rng = np.random.default_rng(21)

        for _ in range(50):
            reduced = reduced_sampler.draw(rng)
            draw = weighter.evaluate(reduced, orthogonal.draw(reduced, rng))
            if draw is None:
                continue
            impact = np.linalg.inv(draw.structural.A0).T
            assert abs(impact[0, 0]) <= 1e-8
            assert impact[1, 0] > 0
            np.testing.assert_allclose(draw.Q.T @ draw.Q, np.eye(2), atol=1e-8)
            np.testing.assert_allclose(
                StructuralMapper().forward(reduced, draw.Q).A0, draw.structural.A0, atol=1e-10
            )

    def test_no_sign_restrictions_accepts_all(self) -> None:
        weighter = SignFilterAndWeighter(RestrictionSet.build(2), n_regressors=3)
        assert weighter.sign_horizon == -1
        assert weighter.satisfies_signs(np.full((2, 2, 1), -1.0))
        np.testing.assert_array_equal(weighter.normalization_signs(np.full((2, 2, 1), -1.0)), [1.0, 1.0])


class TestLogWeight:
    """対数重点重みのテスト"""

    def test_zero_kind_enables_null_space_projection(self, reduced_sampler) -> None:
        """ゼロ制約を含む集合のときだけ零空間へ射影した体積要素を使う"""
        zero = RestrictionSet.build(2, zero_irf=[[1, 0], [0, 0]])
        assert RestrictionKind.ZERO in zero.kinds
        rng = np.random.default_rng(3)
        reduced = reduced_sampler.draw(rng)
        structural = StructuralMapper().forward(reduced, RestrictedOrthogonalSampler(zero).draw(reduced, rng))

        with_zero = SignFilterAndWeighter(zero, n_regressors=3).log_weight(structural)
        unrestricted = SignFilterAndWeighter(RestrictionSet.build(2), n_regressors=3).log_weight(structural)
        assert np.isfinite(with_zero)
        assert np.isfinite(unrestricted)
        assert with_zero != pytest.approx(unrestricted)

    def test_weights_are_finite(self, reduced_sampler) -> None:
        restrictions = RestrictionSet.build(2, zero_irf=[[1, 0], [0, 0]], sign_irf=[[0, 1], [1, 1]])
        weighter = SignFilterAndWeighter(restrictions, n_regressors=3)
        orthogonal = RestrictedOrthogonalSampler(restrictions)
        rng = np.random.default_rng(5)

        weights = []
        for _ in range(100):
            reduced = reduced_sampler.draw(rng)
            draw = weighter.evaluate(reduced, orthogonal.draw(reduced, rng))
            if draw is not None:
                weights.append(draw.log_weight)
        assert weights
        assert np.all(np.isfinite(weights))

    def test_sign_only_weights_nearly_constant(self, reduced_sampler) -> None:
        """ゼロ制約がない場合の重みはドローによらずほぼ一定"""
        restrictions = RestrictionSet.build(2, sign_irf=[[1, 1], [1, -1]])
        weighter = SignFilterAndWeighter(restrictions, n_regressors=3)
        mapper = StructuralMapper()
        orthogonal = RestrictedOrthogonalSampler(restrictions)
        rng = np.random.default_rng(13)

        weights = []
        for _ in range(20):
            reduced = reduced_sampler.draw(rng)
            Q = orthogonal.draw(reduced, rng)
            weights.append(weighter.log_weight(mapper.forward(reduced, Q)))
        assert np.ptp(weights) < 1e-3

    def test_strategies_agree(self, reduced_sampler) -> None:
        """解析的・数値的ヤコビアンで重みが一致する"""
        restrictions = RestrictionSet.build(2, zero_irf=[[1, 0], [0, 0]])
        analytic = SignFilterAndWeighter(restrictions, n_regressors=3, strategy=make_strategy("analytic"))
        central = SignFilterAndWeighter(restrictions, n_regressors=3, strategy=make_strategy("central"))
        orthogonal = RestrictedOrthogonalSampler(restrictions)
        rng = np.random.default_rng(17)

        reduced: ReducedFormDraw = reduced_sampler.draw(rng)
        structural = StructuralMapper().forward(reduced, orthogonal.draw(reduced, rng))
        assert analytic.log_weight(structural) == pytest.approx(central.log_weight(structural), abs=1e-5)
