"""
食の接触時刻の探索

開始時刻から時間を進めながら接触判定を繰り返し、各領域に入った時刻・出た時刻を
イベントベクトルに記録する。ベクトルの前半が入る時刻（外側の領域から順）、
後半が出る時刻（内側の領域から順）で、0.0 は未検出を表す。

  月食(8): 半影始, 皆既半影始, 本影始, 皆既始, 皆既終, 本影終, 皆既半影終, 半影終
  日食(4): 食の始め, 皆既/金環始, 皆既/金環終, 食の終り

皆既にならない月食と部分日食では、進み方の条件を変えて開始時刻からもう一度探索する。
"""
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from classes import Constants, SearchBoundError
from contact import ContactSample, EclipseType
from stepping import StepController

import logging
logger = logging.getLogger(__name__)

Evaluate = Callable[[float], ContactSample]
Approach = Callable[[Sequence[float], EclipseType], bool]

LUNAR_SLOTS = 8
SOLAR_SLOTS = 4
LUNAR_FACTOR = 0.5
SOLAR_FACTOR = 0.75


# ===== 進み方の条件 =====
# True のとき「次の接触まで」、False のとき「皆既の後」の見積もりで進む
def umbra_pending(slots: Sequence[float], eclipse_type: EclipseType) -> bool:
    """月食1回目: 本影・皆既半影の出の記録がまだ無い"""
    return all(s == 0.0 for s in slots[3:7])


def totality_pending(slots: Sequence[float], eclipse_type: EclipseType) -> bool:
    """日食1回目: 皆既/金環がまだ始まっていない、または部分食"""
    return slots[1] == 0.0 or eclipse_type is EclipseType.PARTIAL


def ingress_pending(slots: Sequence[float], eclipse_type: EclipseType) -> bool:
    """日食2回目: 食がまだ始まっていない"""
    return slots[0] == 0.0


def zone_pending(innermost: int) -> Approach:
    """
    月食2回目: 1回目に届いた最も内側の領域にまだ入っていない

    入るまでは次の領域の境界に向かって、入った後はいま居る領域の出口に向かって進む。
    """
    def approach(slots: Sequence[float], eclipse_type: EclipseType) -> bool:
        return slots[innermost] == 0.0
    return approach


@dataclass(frozen=True)
class PassResult:
    """1回分の探索結果"""
    slots: Tuple[float, ...]
    eclipse_type: EclipseType
    iterations: int
    last_jd: float


@dataclass(frozen=True)
class SearchOutcome:
    """探索全体の結果"""
    event_vector: Tuple[float, ...]
    eclipse_type: EclipseType
    passes: int
    iterations: int


def run_pass(
    jd0: float,
    evaluate: Evaluate,
    slots: int,
    approach: Approach,
    factor: float,
    controller: StepController,
    step: float,
    eclipse_type: EclipseType = EclipseType.NO_ECLIPSE,
    max_span_days: float = Constants.MAX_SPAN_DAYS,
    max_iterations: int = Constants.MAX_ITERATIONS,
) -> PassResult:
    """
    1回分の探索。最後のスロット（最も外側の領域から出た時刻）が埋まるまで進む

    Args:
        jd0: 開始時刻(TDBのユリウス日)
        evaluate: 時刻を受け取って接触判定を返す関数
        slots: イベントベクトルの長さ（領域数の2倍）
        approach: どちらの見積もりで進むかを決める関数
        factor: 見積もりに掛ける係数
        controller: 刻み幅の管理
        step: 毎回の基本刻み(日)
        eclipse_type: 食の種類の初期値
        max_span_days: 開始時刻から進んでよい最大日数
        max_iterations: 最大反復回数

    Returns:
        PassResult

    Raises:
        SearchBoundError: 上限までに食が終わらなかったとき
    """
    out: List[float] = [0.0] * slots
    zones = slots // 2
    jd = jd0
    iterations = 0

    while out[-1] == 0.0:
        if iterations >= max_iterations or jd - jd0 > max_span_days:
            raise SearchBoundError(
                f"eclipse search exceeded its bound ({iterations} iterations, {jd - jd0:.2f} days)",
                last_jd=jd, iterations=iterations)
        iterations += 1

        hint = controller.reset()
        jd += step
        sample = evaluate(jd)
        eclipse_type = eclipse_type.promote(sample.eclipse_type)
        hint = controller.merge(hint, sample)

        for i in range(zones):
            if sample.flags[i] and out[i] == 0.0:
                out[i] = jd
        for i in reversed(range(zones)):
            egress = slots - 1 - i
            if not sample.flags[i] and out[egress] == 0.0 and out[i] != 0.0:
                out[egress] = jd

        jd = controller.advance(jd, hint, approach(out, eclipse_type), factor)

    return PassResult(tuple(out), eclipse_type, iterations, jd)


def search_lunar(
    jd0: float,
    evaluate: Evaluate,
    controller: StepController,
    step: float = Constants.LUNAR_STEP_SECONDS / Constants.SECONDS_PER_DAY,
    **bounds,
) -> SearchOutcome:
    """月食（衛星の食）の探索"""
    first = run_pass(jd0, evaluate, LUNAR_SLOTS, umbra_pending, LUNAR_FACTOR, controller, step, **bounds)
    logger.debug(f"lunar pass 1: {first.iterations} iterations, slots={first.slots}")

    # 皆既にならない食では1回目は届かない皆既に向かって進み続け、出の時刻を飛び越す。
    # 入りの時刻で分かった最も内側の領域を目安にしてやり直す
    if first.slots[3] == 0.0:
        innermost = max(i for i in range(LUNAR_SLOTS // 2) if first.slots[i] != 0.0)
        second = run_pass(jd0, evaluate, LUNAR_SLOTS, zone_pending(innermost), LUNAR_FACTOR, controller, step,
                          **bounds)
        logger.debug(f"lunar pass 2: {second.iterations} iterations, slots={second.slots}")
        return SearchOutcome(second.slots, second.eclipse_type, 2, first.iterations + second.iterations)

    return SearchOutcome(first.slots, first.eclipse_type, 1, first.iterations)


def search_solar(
    jd0: float,
    evaluate: Evaluate,
    controller: StepController,
    step: float = Constants.SOLAR_STEP_SECONDS / Constants.SECONDS_PER_DAY,
    **bounds,
) -> SearchOutcome:
    """日食の探索"""
    first = run_pass(jd0, evaluate, SOLAR_SLOTS, totality_pending, SOLAR_FACTOR, controller, step, **bounds)
    logger.debug(f"solar pass 1: {first.iterations} iterations, type={first.eclipse_type.name}")

    # 部分食は時間的に非対称なので、食の始めを飛び越していないか確かめ直す
    if first.eclipse_type is EclipseType.PARTIAL:
        second = run_pass(jd0, evaluate, SOLAR_SLOTS, ingress_pending, SOLAR_FACTOR, controller, step,
                          eclipse_type=first.eclipse_type, **bounds)
        logger.debug(f"solar pass 2: {second.iterations} iterations, slots={second.slots}")
        return SearchOutcome(second.slots, second.eclipse_type, 2, first.iterations + second.iterations)

    return SearchOutcome(first.slots, first.eclipse_type, 1, first.iterations)
