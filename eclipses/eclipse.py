"""
日食・月食の計算

    result = solve("2007/03/03", SSOObserver("Here"), EphemerisConfig("Moon"), kind="lunar")

のように、食の少し前の時刻・観測地・対象天体（月または惑星の衛星）を渡すと、
次の食の接触時刻・種類・食の最大を EclipseResult で返す。
時刻は内部ではすべてTDBのユリウス日。
"""
import concurrent.futures
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

import ephem

from classes import Constants, ConfigurationError, SSOObserver
from bodies import equatorial_radius, get_central_body, is_natural_satellite, polar_radius
from contact import EclipseType, detect_lunar, detect_satellite_shadow, detect_solar
from ephemeris import (
    Algorithm, EphemerisConfig, EphemerisProvider, EphemProvider, SkyfieldProvider,
    date_from_jd_tdb, jd_tdb_from_date,
)
from refine import SeparationMinimumRefiner
from search import search_lunar, search_solar
from shadow import angular_distance, earth_shadow, satellite_shadow, solar_disks
from stepping import StepController

import logging
logger = logging.getLogger(__name__)


# ===== データ構造 =====
@dataclass(frozen=True)
class EclipseQuery:
    """食の問い合わせ"""
    time: Any
    observer: SSOObserver
    target: str = "Moon"
    accuracy: Optional[float] = None
    topocentric: bool = True
    algorithm: str = Algorithm.PYEPHEM
    kind: Optional[str] = None

    @property
    def eph_config(self) -> EphemerisConfig:
        return EphemerisConfig(self.target, self.topocentric, self.algorithm)


@dataclass(frozen=True)
class EclipseEvent:
    """食の1つの現象（始めと終り）"""
    start: float
    end: float
    main_body: str
    secondary_body: str
    label: str

    def duration(self) -> float:
        """継続時間(秒)"""
        return (self.end - self.start) * Constants.SECONDS_PER_DAY

    def start_ut(self) -> ephem.Date:
        return date_from_jd_tdb(self.start)

    def end_ut(self) -> ephem.Date:
        return date_from_jd_tdb(self.end)


@dataclass(frozen=True)
class EclipseResult:
    """食の計算結果"""
    kind: str
    target: str
    eclipse_type: EclipseType
    label: str
    maximum: float
    events: Tuple[EclipseEvent, ...]
    event_vector: Tuple[float, ...]
    visible: Optional[bool] = None
    passes: int = 1
    iterations: int = field(default=0, compare=False)

    def maximum_ut(self) -> ephem.Date:
        return date_from_jd_tdb(self.maximum)


# ===== 入力の確認 =====
def validate(observer: SSOObserver, config: EphemerisConfig) -> None:
    """対象天体が月か衛星で、観測地の天体を回っていること"""
    target = config.target
    if target != "Moon" and not is_natural_satellite(target):
        raise ConfigurationError(Constants.ERR_TARGET)
    if get_central_body(target) != observer.mother_body:
        raise ConfigurationError(Constants.ERR_CENTRAL)


def provider_for(algorithm: str) -> EphemerisProvider:
    """アルゴリズムに合った暦計算"""
    if algorithm == Algorithm.DE421:
        return SkyfieldProvider()
    return EphemProvider()


def _base_algorithm(config: EphemerisConfig) -> str:
    if config.algorithm == Algorithm.NATURAL_SATELLITE:
        return Algorithm.PYEPHEM
    return config.algorithm


def body_config(config: EphemerisConfig, topocentric: bool) -> EphemerisConfig:
    algorithm = _base_algorithm(config) if config.target == "Moon" else Algorithm.NATURAL_SATELLITE
    return EphemerisConfig(config.target, topocentric, algorithm)


def sun_config(config: EphemerisConfig, topocentric: bool) -> EphemerisConfig:
    return EphemerisConfig("Sun", topocentric, _base_algorithm(config))


def _label(lang: str, key: str) -> str:
    return Constants.LABELS.get(lang, Constants.LABELS["en"]).get(key, key)


# ===== 食の計算 =====
class Eclipse:
    """月食・日食に共通の処理"""
    kind = ""

    def __init__(
        self,
        time,
        observer: SSOObserver,
        eph_config: EphemerisConfig,
        accuracy: Optional[float] = None,
        *,
        provider: Optional[EphemerisProvider] = None,
        lang: str = Constants.DEFAULT_LANG,
        max_span_days: float = Constants.MAX_SPAN_DAYS,
        max_iterations: int = Constants.MAX_ITERATIONS,
        lunar_step: float = Constants.LUNAR_STEP_SECONDS,
        solar_step: float = Constants.SOLAR_STEP_SECONDS,
    ):
        validate(observer, eph_config)
        self.observer = observer
        self.config = eph_config
        self.target = eph_config.target
        self.central_body = get_central_body(self.target)
        self.provider = provider or provider_for(eph_config.algorithm)
        self.lang = lang
        self.bounds = {"max_span_days": max_span_days, "max_iterations": max_iterations}
        self.lunar_step = lunar_step / Constants.SECONDS_PER_DAY
        self.solar_step = solar_step / Constants.SECONDS_PER_DAY

        self.controller = StepController(self.target == "Moon")
        self.controller.set_accuracy(accuracy)

        jd0 = jd_tdb_from_date(time)
        logger.debug(f"{self.kind} eclipse search: target={self.target} from {jd0:.5f} ({ephem.Date(time)} UT)")
        outcome = self._search(jd0)
        self.events = outcome.event_vector
        self.type = self._classify(outcome.eclipse_type)
        self.jd_max, self.visible = self._maximum()

        self.result = EclipseResult(
            kind=self.kind,
            target=self.target,
            eclipse_type=self.type,
            label=self.get_eclipse_type(),
            maximum=self.jd_max,
            events=tuple(self.get_events()),
            event_vector=self.events,
            visible=self.visible,
            passes=outcome.passes,
            iterations=outcome.iterations,
        )
        logger.debug(f"{self.kind} eclipse found: {self.type.name} max={self.jd_max:.6f} passes={outcome.passes}")

    def _search(self, jd0: float):
        raise NotImplementedError

    def _classify(self, eclipse_type: EclipseType) -> EclipseType:
        return eclipse_type

    def _maximum(self) -> Tuple[float, Optional[bool]]:
        raise NotImplementedError

    def get_eclipse_maximum(self) -> float:
        """食の最大(TDBのユリウス日)"""
        return self.jd_max

    def get_eclipse_type(self) -> str:
        """食の種類（表示言語のラベル）"""
        return _label(self.lang, self.type.value)

    def get_events(self) -> List[EclipseEvent]:
        raise NotImplementedError


class LunarEclipse(Eclipse):
    """
    月食（および惑星の影による衛星の食）

    月食は地心で計算する。衛星の食は惑星中心の観測地 SSOObserver.planetocentric() で計算する。
    """
    kind = Constants.KIND_LUNAR
    EVENT_LABELS = ("penumbral", "full_penumbral", "partial", "total")

    def _search(self, jd0: float):
        body = body_config(self.config, False)
        sun = sun_config(self.config, False)
        planet_eq = equatorial_radius(self.central_body)

        if self.target == "Moon":
            planet_pol = polar_radius(self.central_body)

            def evaluate(jd):
                moon = self.provider.get_ephemeris(jd, self.observer, body)
                return detect_lunar(earth_shadow(moon, self.provider.get_ephemeris(jd, self.observer, sun),
                                                 planet_eq, planet_pol))
        else:
            radius = equatorial_radius(self.target)

            def evaluate(jd):
                satellite = self.provider.get_ephemeris(jd, self.observer, body)
                return detect_satellite_shadow(satellite_shadow(
                    satellite, self.provider.get_ephemeris(jd, self.observer, sun), planet_eq, radius))

        return search_lunar(jd0, evaluate, self.controller, self.lunar_step, **self.bounds)

    def _classify(self, eclipse_type: EclipseType) -> EclipseType:
        if self.events[3] != 0.0:
            return EclipseType.TOTAL
        if self.events[2] != 0.0:
            return EclipseType.PARTIAL
        return EclipseType.PENUMBRAL

    def _maximum(self) -> Tuple[float, Optional[bool]]:
        e = self.events
        for ingress in (3, 2, 1, 0):
            if e[ingress] != 0.0:
                return (e[ingress] + e[7 - ingress]) * 0.5, None
        return 0.0, None

    def get_events(self) -> List[EclipseEvent]:
        e = self.events
        return [
            EclipseEvent(e[i], e[7 - i], self.target, self.central_body, _label(self.lang, key))
            for i, key in enumerate(self.EVENT_LABELS) if e[i] > 0.0
        ]


class SolarEclipse(Eclipse):
    """
    日食（観測地から見て月や衛星が太陽を隠す）

    地上の観測地では、食の最大を太陽と月の離角の最小で補正し、太陽が見えるかも判定する。
    """
    kind = Constants.KIND_SOLAR

    def __init__(self, *args, refiner: Optional[SeparationMinimumRefiner] = None, **kwargs):
        self.refiner = refiner or SeparationMinimumRefiner()
        super().__init__(*args, **kwargs)

    def _search(self, jd0: float):
        self.body_config = body_config(self.config, self.config.topocentric)
        self.sun_config = sun_config(self.config, self.config.topocentric)

        def evaluate(jd):
            moon = self.provider.get_ephemeris(jd, self.observer, self.body_config)
            sun = self.provider.get_ephemeris(jd, self.observer, self.sun_config)
            return detect_solar(solar_disks(moon, sun))

        return search_solar(jd0, evaluate, self.controller, self.solar_step, **self.bounds)

    def _maximum(self) -> Tuple[float, Optional[bool]]:
        e = self.events
        jd_max = (e[0] + e[3]) * 0.5
        if e[1] != 0.0:
            jd_max = (e[1] + e[2]) * 0.5
        if not self.observer.on_earth:
            return jd_max, None
        return self.refiner.refine(self.provider, self.observer, self.body_config, self.sun_config, e[0], e[3])

    def get_events(self) -> List[EclipseEvent]:
        e = self.events
        labels = ("partial", "annular" if self.type is EclipseType.ANNULAR else "total")
        return [
            EclipseEvent(e[i], e[3 - i], "Sun", self.target, _label(self.lang, labels[i]))
            for i in range(2) if e[i] > 0.0
        ]


# ===== 入口 =====
def infer_kind(time, observer: SSOObserver, config: EphemerisConfig, provider: EphemerisProvider) -> str:
    """対象天体が太陽から90度より離れていれば月食、そうでなければ日食を探す"""
    jd = jd_tdb_from_date(time)
    body = provider.get_ephemeris(jd, observer, body_config(config, False))
    sun = provider.get_ephemeris(jd, observer, sun_config(config, False))
    elong = angular_distance(body.right_ascension, body.declination, sun.right_ascension, sun.declination)
    return Constants.KIND_LUNAR if elong > Constants.PI_OVER_TWO else Constants.KIND_SOLAR


def solve(
    time,
    observer: SSOObserver,
    eph_config: EphemerisConfig,
    accuracy: Optional[float] = None,
    *,
    provider: Optional[EphemerisProvider] = None,
    kind: Optional[str] = None,
    **options,
) -> EclipseResult:
    """
    time の後の最初の食を計算する

    Args:
        time: 開始時刻(UT、ephem.Dateに変換できるもの)
        observer: 観測地
        eph_config: 対象天体・地心/地表・アルゴリズム
        accuracy: 月以外の衛星の探索精度(秒)
        provider: 暦計算。省略時はアルゴリズムから選ぶ
        kind: "lunar" / "solar"。省略時は開始時刻の離角から決める
        options: lang, max_span_days, max_iterations, lunar_step, solar_step

    Returns:
        EclipseResult

    Raises:
        ConfigurationError: 対象天体・観測地の組み合わせが不正
        SearchBoundError: 探索の上限を超えた
    """
    validate(observer, eph_config)
    provider = provider or provider_for(eph_config.algorithm)
    if kind is None:
        kind = infer_kind(time, observer, eph_config, provider)

    match kind:
        case Constants.KIND_LUNAR:
            eclipse = LunarEclipse(time, observer, eph_config, accuracy, provider=provider, **options)
        case Constants.KIND_SOLAR:
            eclipse = SolarEclipse(time, observer, eph_config, accuracy, provider=provider, **options)
        case _:
            raise ConfigurationError(f"Unknown eclipse kind '{kind}'")
    return eclipse.result


def solve_many(
    queries: Iterable[EclipseQuery],
    workers: Optional[int] = None,
    provider: Optional[EphemerisProvider] = None,
    **options,
) -> List[EclipseResult]:
    """
    複数の問い合わせを並列に計算し、食の最大の順に並べて返す

    1回の計算は状態を共有しないので、スレッドプールでそのまま並列にできる。
    """
    queries = list(queries)
    if not queries:
        return []

    def job(query: EclipseQuery) -> EclipseResult:
        return solve(query.time, query.observer, query.eph_config, query.accuracy,
                     provider=provider, kind=query.kind, **options)

    results = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(job, q) for q in queries]
        for fut in concurrent.futures.as_completed(futures):
            results.append(fut.result())

    results.sort(key=lambda r: r.maximum)
    logger.debug(f"solve_many: {len(results)} eclipses")
    return results
