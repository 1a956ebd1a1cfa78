"""
quantref
========
Quantitative reference library: optimal execution, market impact,
SIMM credit margin, special functions, linear algebra and splines.

Modules:
    checks            Numeric validity helpers
    linear_algebra    Matrix inversion, rank, Cholesky, Gram-Schmidt, QR
    special_functions Gamma and modified Bessel estimators
    spline            B-spline segment basis functions
    impact            Transaction functions and market impact parameterization
    dynamics          Arithmetic price evolution parameters
    strategy          Orders and discrete trajectories
    risk              Mean-variance objective and liquidation VaR
    capture           Implementation shortfall estimation
    optimum           Efficient trajectory results
    nonadaptive       Almgren-Chriss and power-impact generators
    sensitivity       Control node greeks
    principal         Almgren (2003) principal-bid estimator
    simm_settings     ISDA SIMM static tables
    simm_margin       SIMM credit delta aggregation
    treasury          Sovereign bond conventions
    exposure          Brownian-bridge dense exposure
    indifference      Utility indifference pricing
    venue             Exchange fee schedules
    curves            CSA multilateral basis curve
    market_data       Price history ingestion and calibration
    visualization     Report figures
"""

__version__ = "1.0.0"

from quantref.dynamics import (
    ArithmeticPriceDynamicsSettings,
    ArithmeticPriceEvolutionParameters,
    LinearPermanentExpectationParameters,
    almgren_2003,
    almgren_chriss,
)
from quantref.impact import (
    AssetTransactionSettings,
    ParticipationRateLinear,
    ParticipationRatePower,
    PriceMarketImpactLinear,
    PriceMarketImpactPower,
    TransactionFunctionLinear,
    TransactionFunctionPower,
    UniformParticipationRate,
)
from quantref.logging_config import configure_logging
from quantref.nonadaptive import (
    ContinuousAlmgrenChriss,
    ContinuousPowerImpact,
    DiscreteAlmgrenChriss,
    DiscreteAlmgrenChrissDrift,
    efficient_frontier,
)
from quantref.principal import Almgren2003Estimator
from quantref.risk import MeanVarianceObjectiveUtility

__all__ = [
    "Almgren2003Estimator",
    "ArithmeticPriceDynamicsSettings",
    "ArithmeticPriceEvolutionParameters",
    "AssetTransactionSettings",
    "ContinuousAlmgrenChriss",
    "ContinuousPowerImpact",
    "DiscreteAlmgrenChriss",
    "DiscreteAlmgrenChrissDrift",
    "LinearPermanentExpectationParameters",
    "MeanVarianceObjectiveUtility",
    "ParticipationRateLinear",
    "ParticipationRatePower",
    "PriceMarketImpactLinear",
    "PriceMarketImpactPower",
    "TransactionFunctionLinear",
    "TransactionFunctionPower",
    "UniformParticipationRate",
    "almgren_2003",
    "almgren_chriss",
    "configure_logging",
    "efficient_frontier",
]
