"""
One-call overview combining the individual analyses.
"""

import logging
from typing import Dict, Optional, Union

import pandas as pd

from ..core.exceptions import FlashlightError
from ..core.flashlight import Flashlight, MultiFlashlight
from ..core.results import LightResult
from ..models.importance import light_importance
from ..models.performance import light_performance
from .breakdown import light_breakdown
from .effects import light_effects
from .interaction import light_interaction
from .surrogate import light_global_surrogate

logger = logging.getLogger(__name__)


class FlashlightReport:
    """Generate a standard set of results for a (multi)flashlight."""

    def __init__(
        self,
        x: Union[Flashlight, MultiFlashlight],
        seed: Optional[int] = None
    ):
        """Initialize report generator.

        Args:
            x: Flashlight or MultiFlashlight with data and response ``y``
            seed: Random seed shared by all analyses
        """
        self.x = x
        self.seed = seed

    def generate_report(
        self,
        top_m: int = 5,
        pairwise: bool = True,
        new_obs: Optional[pd.Series] = None
    ) -> Dict[str, LightResult]:
        """Compute performance, importance, effects of the top features,
        interaction strength, a surrogate tree and optionally a breakdown.

        Args:
            top_m: Number of most important features to profile
            pairwise: Also compute pairwise interaction strength
            new_obs: Observation to break down

        Returns:
            Dict of results keyed by analysis name, e.g. 'effects_<feature>'
        """
        logger.info("Generating flashlight report...")
        results: Dict[str, LightResult] = {}

        # 1. Performance and importance
        results['performance'] = light_performance(self.x)
        importance = light_importance(self.x, seed=self.seed)
        results['importance'] = importance
        top_features = importance.most_important(top_m)

        # 2. Effects of the top features
        logger.info(f"Computing effects of {top_features}...")
        for feat in top_features:
            try:
                results[f'effects_{feat}'] = light_effects(self.x, feat, seed=self.seed)
            except (FlashlightError, ValueError) as e:
                logger.warning(f"Could not compute effects of {feat}: {e}")

        # 3. Interaction strength
        results['interaction'] = light_interaction(self.x, v=top_features, seed=self.seed)
        if pairwise and len(top_features) > 1:
            results['interaction_pairwise'] = light_interaction(
                self.x, v=top_features, pairwise=True, seed=self.seed
            )

        # 4. Surrogate tree and breakdown
        results['surrogate'] = light_global_surrogate(self.x, seed=self.seed)
        if new_obs is not None:
            results['breakdown'] = light_breakdown(self.x, new_obs, seed=self.seed)

        logger.info(f"Flashlight report finished with {len(results)} results")
        return results


if __name__ == "__main__":
    # Example usage
    from sklearn.datasets import make_regression
    from sklearn.ensemble import RandomForestRegressor
    from sklearn.linear_model import LinearRegression

    from ..core.config import configure_logging
    from ..core.flashlight import flashlight, multiflashlight

    configure_logging()

    # Generate synthetic data
    X, y = make_regression(n_samples=500, n_features=5, random_state=42)
    df = pd.DataFrame(X, columns=[f'feature_{i}' for i in range(5)])
    df['target'] = y

    features = df.drop(columns='target')
    forest = RandomForestRegressor(n_estimators=100, random_state=42).fit(features, y)
    linear = LinearRegression().fit(features, y)

    fls = multiflashlight(
        [flashlight(forest, 'forest'), flashlight(linear, 'linear')],
        data=df,
        y='target',
        metrics=['rmse', 'r_squared']
    )
    report = FlashlightReport(fls).generate_report(top_m=3)
    print(report['performance'].data)
    print(report['importance'].data)
