"""
Quantitative Reference Library — Main Orchestrator
==================================================
Entry point for the sample analysis pipeline.

Execution Flow:
    1. Linear algebra checks
    2. Special functions (gamma, Bessel)
    3. Spline segment basis
    4. Price dynamics calibration
    5. Almgren-Chriss optimal trajectories and efficient frontier
    6. Control node greeks at the optimum
    7. Impact exponent sweep and principal-bid analysis
    8. ISDA SIMM tables and credit delta margin
    9. Conventions: treasury, venue fees, CSA basis curve
   10. Brownian-bridge dense exposure and indifference pricing
   11. Visualization
   12. Results export
"""

import datetime
import json
import numpy as np
import pandas as pd
from pathlib import Path
from scipy import stats

from quantref.capture import TrajectoryShortfallEstimator
from quantref.curves import FlatOvernightCurve, MultilateralBasisCurve
from quantref.dynamics import ArithmeticPriceDynamicsSettings, almgren_2003, linear_impact_parameters
from quantref.exposure import BrownianBridgePath
from quantref.impact import AssetTransactionSettings, PriceMarketImpactPower
from quantref.indifference import ReservationPricer
from quantref.linear_algebra import (
    cholesky_banachiewicz,
    invert,
    qr_decomposition,
    rank,
)
from quantref.logging_config import configure_logging
from quantref.market_data import (
    calibrate_asset_settings,
    calibrate_price_dynamics,
    fetch_prices,
    load_prices,
    synthetic_prices,
)
from quantref.nonadaptive import (
    ContinuousAlmgrenChriss,
    ContinuousPowerImpact,
    DiscreteAlmgrenChriss,
    DiscreteAlmgrenChrissDrift,
    efficient_frontier,
)
from quantref.principal import Almgren2003Estimator
from quantref.risk import (
    MeanVarianceObjectiveUtility,
    liquidation_value_at_risk,
    risk_aversion_for_target_variance,
)
from quantref.sensitivity import control_nodes_greeks
from quantref.simm_margin import random_credit_sensitivities
from quantref.simm_settings import (
    CRQSettingsContainer21,
    CRQSystemics21,
    IRThresholdContainer24,
    RiskMeasureSensitivitySettingsCR,
)
from quantref.special_functions import (
    ModifiedBesselFirstIntegralEstimator,
    ModifiedBesselFirstSeriesEstimator,
    euler_gamma,
    nemes_gamma,
)
from quantref.spline import ExponentialTensionHatBasisFunction, LinearHatBasisFunction
from quantref.treasury import currency_benchmark_code, treasury_frame
from quantref.venue import FlatPricingRebateFunction, VenueSettings
from quantref.visualization import (
    plot_correlation_heatmap,
    plot_dense_exposure,
    plot_efficient_frontier,
    plot_holdings_trajectories,
    plot_power_impact_holdings,
    plot_series,
)

# ─────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent
DATA_PATH = PROJECT_ROOT / "data" / "raw_prices.csv"
RESULTS_DIR = PROJECT_ROOT / "results"
FIGURES_DIR = RESULTS_DIR / "figures"
TABLES_DIR = RESULTS_DIR / "tables"

USE_MARKET_DATA = False
RANDOM_SEED = 42
LOG_LEVEL = "WARNING"

# Almgren-Chriss (2000) worked example
AC_ORDER_SIZE = 1_000_000
AC_EXECUTION_TIME = 5.0
AC_NUM_INTERVAL = 5
AC_VOLATILITY = 0.95
AC_DRIFT = 0.02
AC_PERMANENT_SLOPE = 2.5e-7
AC_TEMPORARY_OFFSET = 0.0625
AC_TEMPORARY_SLOPE = 2.5e-6
AC_RISK_AVERSION = 2.0e-6
AC_RISK_AVERSIONS = [1e-8, 1e-7, 5e-7, 1e-6, 2e-6, 5e-6, 1e-5]

# Almgren (2003) impact exponent analysis
PI_PRICE = 50.0
PI_ORDER_SIZE = 100_000
PI_VOLATILITY = 1.0
PI_DAILY_VOLUME = 1_000_000
PI_EXECUTION_FACTOR = 0.1
PI_PERMANENT_FACTOR = 0.0
PI_TEMPORARY_FACTOR = 0.01
PI_EXECUTION_TIME = 5.0
PI_RISK_AVERSION = 1e-6
PI_PRINCIPAL_DISCOUNT = 0.15
PI_EXPONENTS = [
    0.20, 0.25, 0.30, 0.35, 0.40, 0.45, 0.50, 0.55, 0.60, 0.65, 0.70,
    0.75, 0.80, 0.85, 0.90, 0.95, 1.00, 1.10, 1.20, 1.35, 1.50,
]

# SIMM credit non-qualifying delta sample
CRNQ_NOTIONAL = 100.0
CRNQ_COMPONENTS = {
    "1": ["01a", "01b", "01c", "01d", "01e", "01f"],
    "2": ["02a", "02b", "02c", "02d", "02e", "02f"],
}
CRNQ_TENORS = ["1Y", "2Y", "3Y", "5Y", "10Y"]


def print_header(text: str) -> None:
    """Print formatted section header."""
    width = 60
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width)


def print_metrics(metrics: dict, indent: int = 4) -> None:
    """Print dictionary of metrics with formatting."""
    prefix = " " * indent
    for key, val in metrics.items():
        if isinstance(val, float):
            print(f"{prefix}{key:.<35} {val:>16.6f}")
        else:
            print(f"{prefix}{key:.<35} {str(val):>16}")


def main() -> None:
    """Execute the sample analysis pipeline."""
    configure_logging(level=LOG_LEVEL)
    rng = np.random.default_rng(RANDOM_SEED)

    print("\n" + "╔" + "═" * 58 + "╗")
    print("║   QUANTITATIVE REFERENCE LIBRARY                         ║")
    print("║   Optimal Execution, Margin and Numerical Toolkit        ║")
    print("╚" + "═" * 58 + "╝")

    # ── PHASE 1: Linear Algebra ────────────────────────────────
    print_header("PHASE 1 — LINEAR ALGEBRA")

    matrix = np.array([[0.0, 2.0, 1.0], [3.0, 0.0, 4.0], [1.0, 5.0, 0.0]])
    inverse = invert(matrix)
    spd = matrix.T @ matrix + np.eye(3)
    lower = cholesky_banachiewicz(spd)
    qr = qr_decomposition(matrix)

    linear_algebra = {
        "rank": rank(matrix),
        "inverse_residual": float(np.max(np.abs(inverse @ matrix - np.eye(3)))),
        "cholesky_residual": float(np.max(np.abs(lower @ lower.T - spd))),
        "qr_residual": float(np.max(np.abs(qr.q @ qr.r - matrix))),
    }
    print_metrics(linear_algebra)

    # ── PHASE 2: Special Functions ─────────────────────────────
    print_header("PHASE 2 — SPECIAL FUNCTIONS")

    gamma_table = pd.DataFrame({
        "s": [1.0, 2.5, 4.0, 5.5, 7.0],
    })
    gamma_table["euler_gamma"] = gamma_table["s"].apply(euler_gamma)
    gamma_table["nemes_gamma"] = gamma_table["s"].apply(nemes_gamma)
    print("\n" + gamma_table.to_string(index=False, float_format=lambda x: f"{x:.8f}"))

    integral_bessel = ModifiedBesselFirstIntegralEstimator()
    series_bessel = ModifiedBesselFirstSeriesEstimator()
    bessel_table = pd.DataFrame(
        [
            {
                "alpha": alpha,
                "z": z,
                "integral": integral_bessel(alpha, z),
                "series": series_bessel(alpha, z),
            }
            for alpha in (0.0, 0.5, 1.0, 2.5)
            for z in (0.5, 1.0, 2.0)
        ]
    )
    print("\n" + bessel_table.to_string(index=False, float_format=lambda x: f"{x:.8f}"))

    # ── PHASE 3: Spline Basis ──────────────────────────────────
    print_header("PHASE 3 — SPLINE SEGMENT BASIS")

    linear_hat = LinearHatBasisFunction(0.0, 1.0, 3.0)
    tension_hat = ExponentialTensionHatBasisFunction(0.0, 1.0, 3.0, tension=2.0)
    spline_metrics = {
        "linear_hat_normalizer": linear_hat.normalizer(),
        "tension_hat_normalizer": tension_hat.normalizer(),
        "linear_hat_cumulative(1.0)": linear_hat.normalized_cumulative(1.0),
        "tension_hat_cumulative(1.0)": tension_hat.normalized_cumulative(1.0),
    }
    print_metrics(spline_metrics)

    # ── PHASE 4: Price Dynamics Calibration ────────────────────
    print_header("PHASE 4 — PRICE DYNAMICS CALIBRATION")

    if USE_MARKET_DATA:
        if DATA_PATH.exists():
            print(f"  Loading cached data from {DATA_PATH}")
            history = load_prices(str(DATA_PATH))
        else:
            DATA_PATH.parent.mkdir(parents=True, exist_ok=True)
            history = fetch_prices(save_path=str(DATA_PATH))
    else:
        print("  Using synthetic arithmetic Brownian history")
        history = synthetic_prices(PI_PRICE, 0.0, PI_VOLATILITY, 250, PI_DAILY_VOLUME, seed=RANDOM_SEED)

    calibrated_settings, last_price = calibrate_price_dynamics(history["close"])
    calibrated_asset = calibrate_asset_settings(history["close"], history["volume"])
    calibration = {
        "observations": len(history),
        "drift": calibrated_settings.drift,
        "volatility": calibrated_settings.epoch_volatility(),
        "serial_correlation": calibrated_settings.serial_correlation,
        "last_price": last_price,
        "mean_daily_volume": calibrated_asset.daily_volume,
    }
    print_metrics(calibration)

    # ── PHASE 5: Almgren-Chriss Trajectories ───────────────────
    print_header("PHASE 5 — ALMGREN-CHRISS OPTIMAL TRAJECTORIES")

    ac_parameters = linear_impact_parameters(
        0.0, AC_VOLATILITY, AC_PERMANENT_SLOPE, AC_TEMPORARY_OFFSET, AC_TEMPORARY_SLOPE
    )
    ac_drift_parameters = linear_impact_parameters(
        AC_DRIFT, AC_VOLATILITY, AC_PERMANENT_SLOPE, AC_TEMPORARY_OFFSET, AC_TEMPORARY_SLOPE
    )

    def discrete_factory(risk_aversion: float) -> DiscreteAlmgrenChriss:
        return DiscreteAlmgrenChriss.standard(
            AC_ORDER_SIZE, AC_EXECUTION_TIME, AC_NUM_INTERVAL, ac_parameters, risk_aversion
        )

    discrete = discrete_factory(AC_RISK_AVERSION).generate()
    print("\n  Discrete optimum:")
    print_metrics(discrete.summary())
    print("\n" + discrete.to_frame().to_string(index=False, float_format=lambda x: f"{x:,.2f}"))

    shortfall = TrajectoryShortfallEstimator(discrete.trajectory).total_cost_distribution(ac_parameters)
    print(f"\n  Shortfall estimator check: E = {shortfall.mean:,.2f}, V = {shortfall.variance:,.2f}")

    drift_result = DiscreteAlmgrenChrissDrift.standard(
        AC_ORDER_SIZE, AC_EXECUTION_TIME, AC_NUM_INTERVAL, ac_drift_parameters, AC_RISK_AVERSION
    ).generate()
    print("\n  Discrete optimum under drift:")
    print_metrics(drift_result.summary())

    continuous = ContinuousAlmgrenChriss.standard(
        AC_ORDER_SIZE, AC_EXECUTION_TIME, ac_parameters, AC_RISK_AVERSION
    ).generate()
    print("\n  Continuous optimum:")
    print_metrics(continuous.summary())

    frontier = efficient_frontier(discrete_factory, AC_RISK_AVERSIONS)
    print("\n  Efficient frontier:")
    print(frontier.to_string(index=False, float_format=lambda x: f"{x:.6g}"))

    l_var = liquidation_value_at_risk(
        discrete.transaction_cost_expectation, discrete.transaction_cost_variance, 0.95
    )
    target_variance = 0.5 * discrete.transaction_cost_variance
    calibrated_lambda = risk_aversion_for_target_variance(discrete_factory, target_variance)
    print(f"\n  Liquidation VaR (95%): {l_var:,.2f}")
    if calibrated_lambda is not None:
        print(f"  λ for half the variance: {calibrated_lambda:.6e}")

    trajectories = {
        risk_aversion: discrete_factory(risk_aversion).generate().to_frame()
        for risk_aversion in AC_RISK_AVERSIONS
    }

    # ── PHASE 6: Control Node Greeks ───────────────────────────
    print_header("PHASE 6 — CONTROL NODE GREEKS")

    greeks = control_nodes_greeks(
        discrete.trajectory, ac_parameters, MeanVarianceObjectiveUtility(AC_RISK_AVERSION)
    )
    greek_metrics = {
        "objective": greeks.value,
        "max_abs_gradient": float(np.max(np.abs(greeks.jacobian))),
        "min_hessian_eigenvalue": float(np.min(np.linalg.eigvalsh(greeks.hessian))),
    }
    print_metrics(greek_metrics)

    # ── PHASE 7: Impact Exponent Analysis ──────────────────────
    print_header("PHASE 7 — IMPACT EXPONENT & PRINCIPAL BID")

    asset = AssetTransactionSettings(PI_PRICE, PI_DAILY_VOLUME, 0.0)
    rows = []
    power_holdings = {}
    for exponent in PI_EXPONENTS:
        impact = PriceMarketImpactPower(
            asset, PI_PERMANENT_FACTOR, PI_TEMPORARY_FACTOR, PI_EXECUTION_FACTOR, exponent
        )
        parameters = almgren_2003(
            ArithmeticPriceDynamicsSettings(0.0, PI_VOLATILITY),
            impact.permanent_participation(),
            impact.temporary_participation(),
        )
        result = ContinuousPowerImpact.standard(
            PI_ORDER_SIZE, PI_EXECUTION_TIME, parameters, PI_RISK_AVERSION
        ).generate()
        estimator = Almgren2003Estimator(result, parameters)
        rows.append({
            "k": exponent,
            "T*": result.characteristic_time,
            "T_max": result.t_max,
            "E": result.transaction_cost_expectation,
            "sqrt_V": result.transaction_cost_standard_deviation,
            "breakeven": estimator.breakeven_principal_discount(),
            "IR": estimator.information_ratio(PI_PRINCIPAL_DISCOUNT),
            "T_opt": estimator.optimal_information_ratio_horizon(PI_PRINCIPAL_DISCOUNT),
            "IR_opt": estimator.optimal_information_ratio(PI_PRINCIPAL_DISCOUNT),
        })
        if exponent in (0.25, 0.50, 1.00, 1.50):
            power_holdings[exponent] = result.sample(101, horizon=PI_EXECUTION_TIME)

    exponent_table = pd.DataFrame(rows)
    print("\n" + exponent_table.to_string(index=False, float_format=lambda x: f"{x:.4f}"))

    # ── PHASE 8: ISDA SIMM ─────────────────────────────────────
    print_header("PHASE 8 — ISDA SIMM")

    print("\n  Interest rate concentration thresholds (2.4):")
    print(IRThresholdContainer24.to_frame().to_string(index=False))
    for currency in ("USD", "JPY", "SEK", "BRL"):
        threshold = IRThresholdContainer24.threshold(currency)
        print(f"    {currency}: delta {threshold.delta_vega.delta:>6.0f}  vega {threshold.delta_vega.vega:>6.0f}")

    print("\n  Credit qualifying buckets (2.1):")
    print(CRQSettingsContainer21.to_frame().to_string(index=False))
    print_metrics({
        "residual_risk_weight": CRQSystemics21.RESIDUAL_BUCKET_RISK_WEIGHT,
        "vega_risk_weight": CRQSystemics21.VEGA_RISK_WEIGHT,
        "base_correlation_risk_weight": CRQSystemics21.BASE_CORRELATION_RISK_WEIGHT,
    })
    crq_correlation = CRQSettingsContainer21.cross_bucket_correlation().to_frame()

    sensitivities = random_credit_sensitivities(CRNQ_COMPONENTS, CRNQ_TENORS, CRNQ_NOTIONAL, rng)
    crnq = sensitivities.linear_aggregate(RiskMeasureSensitivitySettingsCR.isda_crnq_delta_20())
    print("\n  Credit non-qualifying delta margin (2.0):")
    print(crnq.to_frame().to_string(index=False, float_format=lambda x: f"{x:,.2f}"))
    crnq_metrics = {
        "core_sba_variance": crnq.core_sba_variance,
        "residual_sba_variance": crnq.residual_sba_variance,
        "delta_sba": crnq.sba(),
    }
    print_metrics(crnq_metrics)

    # ── PHASE 9: Conventions ───────────────────────────────────
    print_header("PHASE 9 — TREASURY, VENUE & CSA CONVENTIONS")

    print(treasury_frame().to_string(index=False))
    print(f"\n  EUR benchmark: {currency_benchmark_code('EUR')}   USD benchmark: {currency_benchmark_code('USD')}")

    regular = VenueSettings.regular("NYSE", FlatPricingRebateFunction(-0.0020, 0.0030))
    inverted = VenueSettings.inverted("BYX", FlatPricingRebateFunction(0.0018, -0.0005))
    for venue in (regular, inverted):
        print(f"  {venue}: post 1000 = {venue.post_fee('SPY', 500.0, 1000):+.2f}, "
              f"sweep 1000 = {venue.sweep_fee('SPY', 500.0, 1000):+.2f}")

    csa_curve = MultilateralBasisCurve(FlatOvernightCurve(0.04), 0.0025)
    curve_metrics = {f"zero_rate_{t}y": csa_curve.zero_rate(t) for t in (1.0, 5.0, 10.0)}
    curve_metrics["effective_df_1y_2y"] = csa_curve.effective_discount_factor(1.0, 2.0)
    print_metrics(curve_metrics)

    # ── PHASE 10: Exposure & Indifference Pricing ──────────────
    print_header("PHASE 10 — DENSE EXPOSURE & INDIFFERENCE PRICING")

    epoch = datetime.date(2026, 1, 2)
    pillar_dates = [epoch + datetime.timedelta(days=91 * i) for i in range(5)]
    pillar_exposures = [0.0, 1.8, 2.4, 2.1, 1.2]
    bridge = BrownianBridgePath(
        dict(zip(pillar_dates, pillar_exposures)),
        {date: 1.5 for date in pillar_dates[1:]},
    )
    wander = {
        epoch + datetime.timedelta(days=day): float(rng.standard_normal())
        for day in range(1, 91 * 4)
    }
    dense_exposure = bridge.dense_exposure_frame(wander)
    print(f"  Pillars: {len(pillar_dates)}   Dense points: {len(dense_exposure)}")

    risk_tolerance = 10.0
    pricer = ReservationPricer(
        lambda wealth: -np.exp(-wealth / risk_tolerance),
        lambda price: np.maximum(price - 100.0, 0.0),
    )
    terminal_law = stats.norm(loc=100.0, scale=10.0)
    indifference = pricer.indifference_price(0.0, terminal_law, 1.0, 0.0)
    risk_neutral = float(terminal_law.expect(lambda s: max(s - 100.0, 0.0)))
    print(f"  Call indifference price: {indifference:.4f}  (risk-neutral {risk_neutral:.4f})")

    # ── PHASE 11: Visualization ────────────────────────────────
    print_header("PHASE 11 — GENERATING VISUALIZATIONS")

    fig_dir = str(FIGURES_DIR)
    grid = np.linspace(-0.5, 3.5, 201)
    paths = [
        plot_holdings_trajectories(trajectories, output_dir=fig_dir),
        plot_efficient_frontier(frontier, output_dir=fig_dir),
        plot_power_impact_holdings(power_holdings, output_dir=fig_dir),
        plot_correlation_heatmap(crq_correlation, output_dir=fig_dir),
        plot_dense_exposure(dense_exposure, output_dir=fig_dir),
        plot_series(
            grid,
            {
                "linear hat": [linear_hat(x) for x in grid],
                "tension hat (τ = 2)": [tension_hat(x) for x in grid],
            },
            "segment_basis",
            "B-Spline Segment Basis Functions",
            "x",
            "basis value",
            output_dir=fig_dir,
        ),
    ]
    for path in paths:
        print(f"  ✓ {path}")

    # ── PHASE 12: Export ───────────────────────────────────────
    print_header("RESULTS EXPORT")

    TABLES_DIR.mkdir(parents=True, exist_ok=True)
    discrete.to_frame().to_csv(TABLES_DIR / "almgren_chriss_trajectory.csv", index=False)
    frontier.to_csv(TABLES_DIR / "efficient_frontier.csv", index=False)
    exponent_table.to_csv(TABLES_DIR / "impact_exponent_analysis.csv", index=False)
    crnq.to_frame().to_csv(TABLES_DIR / "crnq_delta_margin.csv", index=False)
    dense_exposure.to_csv(TABLES_DIR / "dense_exposure.csv", index=False)

    all_results = {
        "linear_algebra": linear_algebra,
        "spline": spline_metrics,
        "calibration": calibration,
        "almgren_chriss": {
            "discrete": discrete.summary(),
            "drift": drift_result.summary(),
            "continuous": continuous.summary(),
            "liquidation_var_95": l_var,
            "risk_aversion_half_variance": calibrated_lambda,
        },
        "control_node_greeks": greek_metrics,
        "crnq_delta": crnq_metrics,
        "csa_curve": curve_metrics,
        "indifference_price": indifference,
    }

    results_path = TABLES_DIR / "full_results.json"
    with open(results_path, "w") as f:
        json.dump(all_results, f, indent=2, default=str)

    print(f"\n  Results saved to: {results_path}")

    print("\n" + "╔" + "═" * 58 + "╗")
    print("║   PIPELINE EXECUTION COMPLETE                            ║")
    print("╚" + "═" * 58 + "╝\n")


if __name__ == "__main__":
    main()
