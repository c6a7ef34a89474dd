"""
影の幾何・接触判定・刻み幅のユニットテスト

使用方法:
    python -m pytest test_shadow.py -v
"""
import math
import unittest

from classes import Constants, GeometryError
from contact import (
    EclipseType, MOON_MEAN_ORBITAL_RATE,
    detect_lunar, detect_satellite_shadow, detect_solar,
)
from ephemeris import EphemElement
from shadow import (
    GeometrySample, DiskSample,
    angular_distance, position_angle, elliptical_radius,
    earth_shadow, satellite_shadow, solar_disks,
)
from stepping import StepController, StepHint

SUN_RADIUS = math.radians(16.0 / 60.0)
MOON_RADIUS = math.radians(15.5 / 60.0)


class TestAngles(unittest.TestCase):
    """角距離と位置角のテスト"""

    def test_angular_distance(self):
        self.assertAlmostEqual(angular_distance(1.0, 0.3, 1.0, 0.3), 0.0, places=7)
        self.assertAlmostEqual(angular_distance(0.0, 0.0, math.pi / 2, 0.0), math.pi / 2, places=12)
        self.assertAlmostEqual(angular_distance(0.0, 0.0, 0.0, 0.01), 0.01, places=9)
        # 反対方向
        self.assertAlmostEqual(angular_distance(0.0, 0.0, math.pi, 0.0), math.pi, places=6)

    def test_position_angle(self):
        """真北が0、東が-π/2（符号は反時計回り）"""
        self.assertAlmostEqual(position_angle(1.0, 0.2, 1.0, 0.3), 0.0, places=12)
        self.assertAlmostEqual(position_angle(1.0, 0.0, 1.01, 0.0), -math.pi / 2, places=9)
        self.assertAlmostEqual(position_angle(1.0, 0.0, 0.99, 0.0), math.pi / 2, places=9)

    def test_position_angle_coincident(self):
        self.assertEqual(position_angle(0.5, 0.5, 0.5, 0.5), 0.0)

    def test_elliptical_radius(self):
        a, b = 0.012, 0.010
        self.assertAlmostEqual(elliptical_radius(math.pi / 2, a, b), a, places=12)
        self.assertAlmostEqual(elliptical_radius(0.0, a, b), b, places=12)
        r = elliptical_radius(math.pi / 4, a, b)
        self.assertTrue(b < r < a)
        # 円なら方向によらない
        for pa in (0.0, 0.3, 1.0, 2.5):
            self.assertAlmostEqual(elliptical_radius(pa, a, a), a, places=12)

    def test_zero_radius(self):
        with self.assertRaises(GeometryError):
            elliptical_radius(0.0, 0.0, 0.01)


class TestEarthShadow(unittest.TestCase):
    """地球の影の大きさのテスト"""

    def setUp(self):
        self.sun = EphemElement(0.0, 0.0, SUN_RADIUS, 1.0)
        self.moon_distance = 384400.0 / Constants.AU

    def moon_at(self, offset_ra: float, dec: float = 0.0) -> EphemElement:
        radius = math.asin(1737.4 / 384400.0)
        return EphemElement(math.pi + offset_ra, dec, radius, self.moon_distance)

    def test_shadow_size(self):
        """本影の半径は約0.7度、半影は約1.25度"""
        sample = earth_shadow(self.moon_at(0.0), self.sun, 6378.1366, 6356.7519)
        mr = math.asin(1737.4 / 384400.0)
        umbra = math.degrees(sample.umbra_outer - mr)
        penumbra = math.degrees(sample.penumbra_outer - mr)
        self.assertGreater(umbra, 0.65)
        self.assertLess(umbra, 0.75)
        self.assertGreater(penumbra, 1.15)
        self.assertLess(penumbra, 1.32)
        self.assertAlmostEqual(sample.dist, 0.0, places=7)

    def test_shadow_is_elliptical(self):
        """影の半径は方向によって変わる"""
        east = earth_shadow(self.moon_at(0.01), self.sun, 6378.1366, 6356.7519)
        north = earth_shadow(self.moon_at(0.0, 0.01), self.sun, 6378.1366, 6356.7519)
        self.assertNotAlmostEqual(east.umbra_outer, north.umbra_outer, places=8)
        # 赤道方向と極方向の差はわずか
        self.assertAlmostEqual(east.umbra_outer, north.umbra_outer, places=4)

    def test_umbra_inside_penumbra(self):
        sample = earth_shadow(self.moon_at(0.005, 0.003), self.sun, 6378.1366, 6356.7519)
        self.assertLess(sample.umbra_outer, sample.penumbra_outer)
        self.assertLess(sample.umbra_inner, sample.penumbra_inner)
        self.assertLess(sample.umbra_inner, sample.umbra_outer)

    def test_degenerate_radius(self):
        moon = EphemElement(math.pi, 0.0, 0.0, self.moon_distance)
        with self.assertRaises(GeometryError):
            earth_shadow(moon, self.sun, 6378.1366, 6356.7519)


class TestSatelliteShadow(unittest.TestCase):
    """惑星の影と衛星のテスト"""

    def setUp(self):
        self.sun = EphemElement(0.0, 0.0, math.radians(3.0 / 60.0), 5.2)

    def satellite(self, elongation: float) -> EphemElement:
        distance = 421700.0 / Constants.AU
        return EphemElement(0.0, 0.0, math.asin(1821.6 / 421700.0), distance, elongation=elongation)

    def test_behind_planet_is_eclipsed(self):
        sample = satellite_shadow(self.satellite(math.pi - 0.01), self.sun, 71492.0, 1821.6)
        self.assertTrue(sample.shadowed_side)
        contact = detect_satellite_shadow(sample)
        self.assertEqual(contact.flags, (True, True, True, True))

    def test_sunward_side_is_not_eclipsed(self):
        """太陽側では射影距離が小さくても食にならない"""
        sample = satellite_shadow(self.satellite(0.01), self.sun, 71492.0, 1821.6)
        self.assertFalse(sample.shadowed_side)
        self.assertEqual(detect_satellite_shadow(sample).flags, (False, False, False, False))

    def test_far_from_shadow(self):
        sample = satellite_shadow(self.satellite(math.pi / 2 + 0.1), self.sun, 71492.0, 1821.6)
        self.assertEqual(detect_satellite_shadow(sample).flags, (False, False, False, False))
        # 時間の見積もりはしない
        self.assertEqual(detect_satellite_shadow(sample).to_next_event, 0.0)


class TestSolarDisks(unittest.TestCase):
    """視円盤のテスト"""

    def test_circular_moon(self):
        sun = EphemElement(1.0, 0.2, SUN_RADIUS, 1.0)
        moon = EphemElement(1.001, 0.2, MOON_RADIUS, 0.00257)
        disks = solar_disks(moon, sun)
        self.assertAlmostEqual(disks.moon_radius, MOON_RADIUS, places=12)
        self.assertEqual(disks.sun_radius, SUN_RADIUS)
        self.assertAlmostEqual(disks.outer, SUN_RADIUS + MOON_RADIUS, places=12)


class TestDetectLunar(unittest.TestCase):
    """月食の接触判定のテスト"""

    def setUp(self):
        # 本影 0.0122、半影 0.0215、月の視半径 0.0045 (rad)
        self.thresholds = dict(umbra_outer=0.0167, umbra_inner=0.0077, penumbra_outer=0.026, penumbra_inner=0.017)

    def sample(self, dist: float) -> GeometrySample:
        return GeometrySample(dist=dist, **self.thresholds)

    def test_outside(self):
        c = detect_lunar(self.sample(0.05))
        self.assertEqual(c.flags, (False, False, False, False))
        self.assertAlmostEqual(c.to_next_event, 0.125 * (0.05 - 0.026) / MOON_MEAN_ORBITAL_RATE)
        self.assertEqual(c.after_totality, 0.0)

    def test_inside_penumbra(self):
        c = detect_lunar(self.sample(0.02))
        self.assertTrue(c.inside_penumbra)
        self.assertFalse(c.total_penumbra)
        self.assertFalse(c.inside_umbra)
        self.assertAlmostEqual(c.to_next_event, 0.25 * (0.02 - 0.017) / MOON_MEAN_ORBITAL_RATE)
        self.assertAlmostEqual(c.after_totality, 0.25 * (0.026 - 0.02) / MOON_MEAN_ORBITAL_RATE)

    def test_total_penumbra(self):
        c = detect_lunar(self.sample(0.0168))
        self.assertEqual(c.flags, (True, True, False, False))
        self.assertAlmostEqual(c.to_next_event, 0.25 * (0.0168 - 0.0167) / MOON_MEAN_ORBITAL_RATE)
        self.assertAlmostEqual(c.after_totality, 0.25 * (0.017 - 0.0168) / MOON_MEAN_ORBITAL_RATE)

    def test_partial_umbra(self):
        c = detect_lunar(self.sample(0.01))
        self.assertEqual(c.flags, (True, True, True, False))
        self.assertAlmostEqual(c.to_next_event, 0.25 * (0.01 - 0.0077) / MOON_MEAN_ORBITAL_RATE)
        self.assertAlmostEqual(c.after_totality, 0.25 * (0.0167 - 0.01) / MOON_MEAN_ORBITAL_RATE)

    def test_totality(self):
        c = detect_lunar(self.sample(0.001))
        self.assertEqual(c.flags, (True, True, True, True))
        self.assertAlmostEqual(c.to_next_event, 0.25 * (0.0077 - 0.001) / MOON_MEAN_ORBITAL_RATE)
        self.assertEqual(c.to_next_event, c.after_totality)

    def test_umbra_implies_penumbra(self):
        for i in range(400):
            c = detect_lunar(self.sample(i * 0.0001))
            if c.inside_umbra:
                self.assertTrue(c.inside_penumbra)
            if c.total_umbra:
                self.assertTrue(c.inside_umbra)
            self.assertGreaterEqual(c.to_next_event, 0.0)
            self.assertGreaterEqual(c.after_totality, 0.0)


class TestDetectSolar(unittest.TestCase):
    """日食の接触判定のテスト"""

    def test_annular(self):
        c = detect_solar(DiskSample(0.0001, 0.0045, 0.0047, 0.0045))
        self.assertTrue(c.inside_shadow)
        self.assertTrue(c.totality)
        self.assertIs(c.eclipse_type, EclipseType.ANNULAR)

    def test_total(self):
        c = detect_solar(DiskSample(0.0001, 0.0049, 0.0047, 0.0049))
        self.assertTrue(c.totality)
        self.assertIs(c.eclipse_type, EclipseType.TOTAL)

    def test_partial(self):
        c = detect_solar(DiskSample(0.005, 0.0045, 0.0047, 0.0045))
        self.assertEqual(c.flags, (True, False))
        self.assertIs(c.eclipse_type, EclipseType.PARTIAL)
        self.assertAlmostEqual(c.to_next_event, (0.005 - 0.0002) / MOON_MEAN_ORBITAL_RATE)
        self.assertAlmostEqual(c.after_totality, (0.0092 - 0.005) / MOON_MEAN_ORBITAL_RATE)

    def test_partial_larger_moon(self):
        c = detect_solar(DiskSample(0.005, 0.0049, 0.0047, 0.0049))
        self.assertAlmostEqual(c.to_next_event, (0.005 - 0.0002) / MOON_MEAN_ORBITAL_RATE)

    def test_outside(self):
        c = detect_solar(DiskSample(0.1, 0.0045, 0.0047, 0.0045))
        self.assertEqual(c.flags, (False, False))
        self.assertIsNone(c.eclipse_type)
        self.assertAlmostEqual(c.to_next_event, (0.1 - 0.0092) / MOON_MEAN_ORBITAL_RATE)
        self.assertEqual(c.to_next_event, c.after_totality)


class TestEclipseType(unittest.TestCase):
    """食の種類の遷移のテスト"""

    def test_promote(self):
        self.assertIs(EclipseType.NO_ECLIPSE.promote(EclipseType.PARTIAL), EclipseType.PARTIAL)
        self.assertIs(EclipseType.NO_ECLIPSE.promote(EclipseType.ANNULAR), EclipseType.ANNULAR)
        self.assertIs(EclipseType.PARTIAL.promote(EclipseType.TOTAL), EclipseType.TOTAL)
        self.assertIs(EclipseType.PARTIAL.promote(None), EclipseType.PARTIAL)

    def test_sticky(self):
        """皆既・金環からは部分食に戻らない"""
        self.assertIs(EclipseType.TOTAL.promote(EclipseType.PARTIAL), EclipseType.TOTAL)
        self.assertIs(EclipseType.ANNULAR.promote(EclipseType.PARTIAL), EclipseType.ANNULAR)
        self.assertIs(EclipseType.ANNULAR.promote(EclipseType.TOTAL), EclipseType.ANNULAR)
        self.assertIs(EclipseType.PARTIAL.promote(EclipseType.NO_ECLIPSE), EclipseType.PARTIAL)


class TestStepController(unittest.TestCase):
    """刻み幅の管理のテスト"""

    def test_moon_mode(self):
        controller = StepController(moon_mode=True)
        controller.set_accuracy(10.0)
        self.assertEqual(controller.reset(), StepHint(0.0, 0.0))
        sample = detect_lunar(GeometrySample(0.02, 0.0167, 0.0077, 0.026, 0.017))
        hint = controller.merge(controller.reset(), sample)
        self.assertEqual(hint.to_next_event, sample.to_next_event)
        self.assertEqual(hint.after_totality, sample.after_totality)

    def test_satellite_mode(self):
        controller = StepController(moon_mode=False)
        one_second = 1.0 / Constants.SECONDS_PER_DAY
        self.assertEqual(controller.reset(), StepHint(one_second, one_second))

        controller.set_accuracy(10.0)
        hint = controller.reset()
        self.assertAlmostEqual(hint.to_next_event, 10.0 / Constants.SECONDS_PER_DAY)

        # 0以下は無視
        controller.set_accuracy(0.0)
        controller.set_accuracy(-5.0)
        self.assertEqual(controller.reset(), hint)

        # 見積もりは取り込まない
        sample = detect_lunar(GeometrySample(0.05, 0.0167, 0.0077, 0.026, 0.017))
        self.assertEqual(controller.merge(hint, sample), hint)

    def test_advance(self):
        controller = StepController(moon_mode=True)
        hint = StepHint(0.2, 0.4)
        self.assertAlmostEqual(controller.advance(100.0, hint, True, 0.5), 100.1)
        self.assertAlmostEqual(controller.advance(100.0, hint, False, 0.75), 100.3)


if __name__ == '__main__':
    unittest.main()
