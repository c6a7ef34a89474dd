"""
日食の食の最大の補正

探索で得た食の始め・終りの中点は、地上の観測地では月の見かけの動きが一様でないため
最大の時刻から少しずれる。ここでは太陽と月の離角が最小になる時刻を黄金分割法で求め、
そのときに太陽が地平線上にあるか（観測地から見えるか）もあわせて返す。
"""
import math
from typing import Optional, Tuple

from classes import Constants, SSOObserver
from ephemeris import EphemerisProvider, EphemerisConfig
from shadow import angular_distance

import logging
logger = logging.getLogger(__name__)

GOLDEN_RATIO = (math.sqrt(5.0) - 1.0) / 2.0


class SeparationMinimumRefiner:
    """太陽と月の離角の最小から食の最大を求める"""

    def __init__(self, tolerance_seconds: float = 0.5, num_samples: int = 20):
        self.tolerance = tolerance_seconds / Constants.SECONDS_PER_DAY
        self.num_samples = num_samples

    def _separation(self, jd: float, provider: EphemerisProvider, observer: SSOObserver,
                    moon_config: EphemerisConfig, sun_config: EphemerisConfig) -> float:
        moon = provider.get_ephemeris(jd, observer, moon_config)
        sun = provider.get_ephemeris(jd, observer, sun_config)
        return angular_distance(moon.right_ascension, moon.declination, sun.right_ascension, sun.declination)

    def refine(
        self,
        provider: EphemerisProvider,
        observer: SSOObserver,
        moon_config: EphemerisConfig,
        sun_config: EphemerisConfig,
        start: float,
        end: float,
    ) -> Tuple[float, Optional[bool]]:
        """
        start から end (TDBのユリウス日) の間で離角が最小になる時刻を探す

        Returns:
            (食の最大の時刻, 太陽が地平線上にあるか)。地心の観測では可視判定は None
        """
        def separation(jd: float) -> float:
            return self._separation(jd, provider, observer, moon_config, sun_config)

        # 粗く当たりをつける
        dt = (end - start) / self.num_samples
        best_jd, best_sep = start, separation(start)
        for i in range(1, self.num_samples + 1):
            jd = start + i * dt
            sep = separation(jd)
            if sep < best_sep:
                best_jd, best_sep = jd, sep

        # 黄金分割法で詰める
        low = max(start, best_jd - dt)
        high = min(end, best_jd + dt)
        mid1 = high - GOLDEN_RATIO * (high - low)
        mid2 = low + GOLDEN_RATIO * (high - low)
        sep1, sep2 = separation(mid1), separation(mid2)
        while high - low > self.tolerance:
            if sep1 < sep2:
                high, mid2, sep2 = mid2, mid1, sep1
                mid1 = high - GOLDEN_RATIO * (high - low)
                sep1 = separation(mid1)
            else:
                low, mid1, sep1 = mid1, mid2, sep2
                mid2 = low + GOLDEN_RATIO * (high - low)
                sep2 = separation(mid2)

        jd_max = (low + high) / 2.0
        sun = provider.get_ephemeris(jd_max, observer, sun_config)
        visible = None if sun.elevation is None else sun.elevation > 0.0
        logger.debug(f"refined maximum: {jd_max:.6f} visible={visible}")
        return jd_max, visible
