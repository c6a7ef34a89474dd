"""
暦計算プロバイダ

食の探索は「ある時刻に、ある観測地から見た天体の赤経・赤緯・視半径・距離」を
繰り返し問い合わせるだけで、暦の理論そのものには依存しない。
ここではその問い合わせ口(EphemerisProvider)と、PyEphem版・skyfield版の実装を置く。

時刻はTDBのユリウス日で受け取り、PyEphemに渡すときだけΔTを引いてUTにする。
"""
import math
import ephem
import numpy as np
from skyfield.api import load, wgs84
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from classes import Constants, EphemerisError, SSOObserver
from bodies import get_body, is_natural_satellite

import logging
logger = logging.getLogger(__name__)

# WGS84
WGS84_A = 6378.137
WGS84_F = 1.0 / 298.257223563


class Algorithm:
    """暦計算のアルゴリズム選択子"""
    PYEPHEM = "PYEPHEM"                     # libastro の月・惑星理論
    DE421 = "DE421"                         # JPL DE421 (skyfield)
    NATURAL_SATELLITE = "NATURAL_SATELLITE" # 惑星中心から見た衛星


@dataclass(frozen=True)
class EphemerisConfig:
    """暦計算の条件"""
    target: str = "Moon"
    topocentric: bool = True
    algorithm: str = Algorithm.PYEPHEM


@dataclass(frozen=True)
class EphemElement:
    """
    ある時刻の天体の見かけの位置

    角度はラジアン、距離は天文単位。elevation は地上の観測地のときだけ入る。
    """
    right_ascension: float
    declination: float
    angular_radius: float
    distance: float
    position_angle_of_axis: float = 0.0
    elongation: float = 0.0
    elevation: Optional[float] = None


# ===== 時刻変換 =====
def jd_tdb_from_date(date) -> float:
    """UT(ephem.Dateに変換できるもの)からTDBのユリウス日へ"""
    d = ephem.Date(date)
    return float(d) + Constants.JD_OF_EPHEM_EPOCH + ephem.delta_t(d) / Constants.SECONDS_PER_DAY


def date_from_jd_tdb(jd: float) -> ephem.Date:
    """TDBのユリウス日からUTのephem.Dateへ"""
    approx = ephem.Date(jd - Constants.JD_OF_EPHEM_EPOCH)
    return ephem.Date(approx - ephem.delta_t(approx) / Constants.SECONDS_PER_DAY)


def unit_vector(ra: float, dec: float) -> np.ndarray:
    cd = math.cos(dec)
    return np.array([cd * math.cos(ra), cd * math.sin(ra), math.sin(dec)])


def to_radec(vec: np.ndarray):
    """直交座標から (赤経, 赤緯, 距離)"""
    r = float(np.linalg.norm(vec))
    ra = math.atan2(vec[1], vec[0]) % (2.0 * math.pi)
    dec = math.asin(float(np.clip(vec[2] / r, -1.0, 1.0)))
    return ra, dec, r


def observer_vector(obs: ephem.Observer) -> np.ndarray:
    """観測地の地心ベクトル(km、赤道座標・日付の分点)"""
    lat = float(obs.lat)
    e2 = WGS84_F * (2.0 - WGS84_F)
    n = WGS84_A / math.sqrt(1.0 - e2 * math.sin(lat) ** 2)
    h = obs.elevation / 1000.0
    rho_cos = (n + h) * math.cos(lat)
    rho_sin = (n * (1.0 - e2) + h) * math.sin(lat)
    lst = float(obs.sidereal_time())
    return np.array([rho_cos * math.cos(lst), rho_cos * math.sin(lst), rho_sin])


class EphemerisProvider(ABC):
    """暦計算の問い合わせ口"""

    @abstractmethod
    def get_ephemeris(self, jd: float, observer: SSOObserver, config: EphemerisConfig) -> EphemElement:
        """
        TDBのユリウス日 jd に observer から見た config.target の位置を返す

        Args:
            jd: 時刻(TDBのユリウス日)
            observer: 観測地
            config: 対象天体・地心/地表・アルゴリズム

        Returns:
            EphemElement
        """


class EphemProvider(EphemerisProvider):
    """PyEphem による暦計算"""

    def get_ephemeris(self, jd: float, observer: SSOObserver, config: EphemerisConfig) -> EphemElement:
        date = date_from_jd_tdb(jd)

        if not observer.on_earth:
            return self._planetocentric(date, observer.mother_body, config)

        if config.target not in ("Moon", "Sun"):
            raise EphemerisError(f"{config.target} is not available for observers on the Earth")

        body = ephem.Moon() if config.target == "Moon" else ephem.Sun()
        radius = get_body(config.target).equatorial_radius

        if config.topocentric and not observer.geocentric:
            obs = observer.ephem_obs.copy()
            obs.pressure = 0
            obs.date = date
            obs.epoch = date
            body.compute(obs)

            # PyEphemの視半径は地心距離によるので、地表からの距離で計算し直す
            geo = unit_vector(float(body.g_ra), float(body.g_dec)) * body.earth_distance * Constants.AU
            distance_km = float(np.linalg.norm(geo - observer_vector(obs)))
            return EphemElement(
                right_ascension=float(body.ra),
                declination=float(body.dec),
                angular_radius=math.asin(radius / distance_km),
                distance=distance_km / Constants.AU,
                elongation=float(body.elong),
                elevation=float(body.alt),
            )

        body.compute(date, epoch=date)
        distance_km = body.earth_distance * Constants.AU
        return EphemElement(
            right_ascension=float(body.g_ra),
            declination=float(body.g_dec),
            angular_radius=math.asin(radius / distance_km),
            distance=body.earth_distance,
            elongation=float(body.elong),
        )

    def _planetocentric(self, date: ephem.Date, planet_name: str, config: EphemerisConfig) -> EphemElement:
        """
        惑星中心から見た太陽または衛星

        衛星の位置は、地球から見た惑星との離角と、視線方向の z (惑星半径単位、手前が正)
        から惑星中心のベクトルを組み立てる。
        """
        target = config.target
        if target != "Sun" and not is_natural_satellite(target):
            raise EphemerisError(f"{target} cannot be observed from the center of {planet_name}")
        if target != "Sun" and config.algorithm != Algorithm.NATURAL_SATELLITE:
            raise EphemerisError(f"{target} requires the {Algorithm.NATURAL_SATELLITE} algorithm")

        planet = getattr(ephem, planet_name)()
        planet.compute(date, epoch=date)
        sun = ephem.Sun()
        sun.compute(date, epoch=date)

        u_planet = unit_vector(float(planet.g_ra), float(planet.g_dec))
        planet_km = planet.earth_distance * Constants.AU
        sun_from_planet = unit_vector(float(sun.g_ra), float(sun.g_dec)) * sun.earth_distance * Constants.AU \
            - u_planet * planet_km

        if target == "Sun":
            ra, dec, r = to_radec(sun_from_planet)
            return EphemElement(ra, dec, math.asin(get_body("Sun").equatorial_radius / r), r / Constants.AU)

        if get_body(target).central_body != planet_name:
            raise EphemerisError(f"{target} does not orbit {planet_name}")

        moon = getattr(ephem, target)()
        moon.compute(date, epoch=date)
        planet_radius = get_body(planet_name).equatorial_radius
        u_moon = unit_vector(float(moon.g_ra), float(moon.g_dec))
        moon_from_planet = (planet_km - moon.z * planet_radius) * u_moon - planet_km * u_planet

        ra, dec, r = to_radec(moon_from_planet)
        cos_elong = float(np.dot(moon_from_planet, sun_from_planet)) / (r * float(np.linalg.norm(sun_from_planet)))
        return EphemElement(
            right_ascension=ra,
            declination=dec,
            angular_radius=math.asin(get_body(target).equatorial_radius / r),
            distance=r / Constants.AU,
            elongation=math.acos(float(np.clip(cos_elong, -1.0, 1.0))),
        )


class SkyfieldProvider(EphemerisProvider):
    """skyfield + JPL DE421 による暦計算（地球の観測地から見た月と太陽のみ）"""

    def __init__(self, ephemeris_file: str = "de421.bsp"):
        self.ts = load.timescale()
        self.eph = load(ephemeris_file)   # 初回のみDL
        self.earth = self.eph['earth']
        self.bodies = {"Moon": self.eph['moon'], "Sun": self.eph['sun']}
        logger.debug(f"SkyfieldProvider: loaded {ephemeris_file}")

    def get_ephemeris(self, jd: float, observer: SSOObserver, config: EphemerisConfig) -> EphemElement:
        if not observer.on_earth or config.target not in self.bodies:
            raise EphemerisError(f"{config.target} from {observer.mother_body} is not available with DE421")

        t = self.ts.tdb_jd(jd)
        topocentric = config.topocentric and not observer.geocentric
        center = self.earth
        if topocentric:
            center = self.earth + wgs84.latlon(observer.lat, observer.lon, elevation_m=observer.elev)

        apparent = center.at(t).observe(self.bodies[config.target]).apparent()
        ra, dec, distance = apparent.radec(epoch='date')
        elevation = None
        if topocentric:
            alt, _az, _d = apparent.altaz()
            elevation = alt.radians

        radius = get_body(config.target).equatorial_radius
        return EphemElement(
            right_ascension=ra.radians,
            declination=dec.radians,
            angular_radius=math.asin(radius / (distance.au * Constants.AU)),
            distance=distance.au,
            elevation=elevation,
        )


def create_provider(name: str = "ephem") -> EphemerisProvider:
    """設定名からプロバイダを作る"""
    match name.lower():
        case "ephem" | "pyephem":
            return EphemProvider()
        case "skyfield" | "de421":
            return SkyfieldProvider()
        case _:
            raise EphemerisError(f"Unknown ephemeris provider '{name}'")
