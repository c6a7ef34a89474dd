"""
天体カタログ

食の計算に必要な天体の物理定数（赤道半径・極半径）と、
衛星がどの惑星を回っているか（中心天体）をまとめる。
半径の単位は km。
"""
from typing import Optional, Dict

from classes import ConfigurationError


class BodyElement:
    """天体の物理定数"""

    def __init__(
        self,
        name: str,
        equatorial_radius: float,
        polar_radius: Optional[float] = None,
        central_body: Optional[str] = None
    ):
        self.name = name
        self.equatorial_radius = equatorial_radius
        self.polar_radius = polar_radius if polar_radius is not None else equatorial_radius
        self.central_body = central_body

    def __repr__(self) -> str:
        return f"BodyElement({self.name}, eq={self.equatorial_radius} km, pol={self.polar_radius} km)"


# 衛星はPyEphemのクラス名と同じ名前で登録する
BODIES: Dict[str, BodyElement] = {
    body.name: body for body in (
        BodyElement("Sun", 696000.0, central_body=None),
        BodyElement("Earth", 6378.1366, 6356.7519, central_body="Sun"),
        BodyElement("Moon", 1737.4, central_body="Earth"),
        BodyElement("Mars", 3396.19, 3376.20, central_body="Sun"),
        BodyElement("Phobos", 11.1, central_body="Mars"),
        BodyElement("Deimos", 6.2, central_body="Mars"),
        BodyElement("Jupiter", 71492.0, 66854.0, central_body="Sun"),
        BodyElement("Io", 1821.6, central_body="Jupiter"),
        BodyElement("Europa", 1560.8, central_body="Jupiter"),
        BodyElement("Ganymede", 2631.2, central_body="Jupiter"),
        BodyElement("Callisto", 2410.3, central_body="Jupiter"),
        BodyElement("Saturn", 60268.0, 54364.0, central_body="Sun"),
        BodyElement("Mimas", 198.2, central_body="Saturn"),
        BodyElement("Enceladus", 252.1, central_body="Saturn"),
        BodyElement("Tethys", 531.1, central_body="Saturn"),
        BodyElement("Dione", 561.4, central_body="Saturn"),
        BodyElement("Rhea", 763.8, central_body="Saturn"),
        BodyElement("Titan", 2574.7, central_body="Saturn"),
        BodyElement("Hyperion", 135.0, central_body="Saturn"),
        BodyElement("Iapetus", 734.5, central_body="Saturn"),
        BodyElement("Uranus", 25559.0, 24973.0, central_body="Sun"),
        BodyElement("Miranda", 235.8, central_body="Uranus"),
        BodyElement("Ariel", 578.9, central_body="Uranus"),
        BodyElement("Umbriel", 584.7, central_body="Uranus"),
        BodyElement("Titania", 788.9, central_body="Uranus"),
        BodyElement("Oberon", 761.4, central_body="Uranus"),
    )
}


PLANETS = ("Mars", "Jupiter", "Saturn", "Uranus")


def get_body(name: str) -> BodyElement:
    """名前から天体を引く"""
    try:
        return BODIES[name]
    except KeyError:
        raise ConfigurationError(f"Unknown body '{name}'") from None


def get_central_body(name: str) -> Optional[str]:
    return get_body(name).central_body


def is_natural_satellite(name: str) -> bool:
    """月以外の自然衛星か"""
    body = BODIES.get(name)
    return body is not None and name != "Moon" and body.central_body in PLANETS


def satellites_of(planet: str):
    """惑星の衛星名の一覧"""
    return [name for name, body in BODIES.items() if body.central_body == planet and planet in PLANETS]


def equatorial_radius(name: str) -> float:
    """赤道半径(km)"""
    return get_body(name).equatorial_radius


def polar_radius(name: str) -> float:
    """極半径(km)"""
    return get_body(name).polar_radius
