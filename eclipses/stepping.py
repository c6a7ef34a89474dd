"""
探索の刻み幅

探索は毎回の細かい基本刻み（月食1秒、日食0.5秒）に加えて、
接触判定が見積もった「次の接触まで」「皆既の後」の時間の一部だけ先に進む。
月以外の衛星では見積もりを使わず、設定した精度（秒）で一定に進む。
"""
from dataclasses import dataclass
from typing import Optional

from classes import Constants
from contact import ContactSample


@dataclass(frozen=True)
class StepHint:
    """次に進む時間の候補（日）。どちらも0以上"""
    to_next_event: float = 0.0
    after_totality: float = 0.0


class StepController:
    """刻み幅の管理"""

    def __init__(self, moon_mode: bool, accuracy: Optional[float] = Constants.DEFAULT_ACCURACY):
        self.moon_mode = moon_mode
        self.accuracy = Constants.DEFAULT_ACCURACY / Constants.SECONDS_PER_DAY
        self.set_accuracy(accuracy)

    def set_accuracy(self, seconds: Optional[float]) -> None:
        """月以外の衛星の探索精度(秒)。月のとき、0以下のときは何もしない"""
        if seconds is not None and seconds > 0 and not self.moon_mode:
            self.accuracy = seconds / Constants.SECONDS_PER_DAY

    def reset(self) -> StepHint:
        if self.moon_mode:
            return StepHint()
        return StepHint(self.accuracy, self.accuracy)

    def merge(self, hint: StepHint, sample: ContactSample) -> StepHint:
        """接触判定の見積もりを取り込む（月のときだけ）"""
        if not self.moon_mode:
            return hint
        return StepHint(sample.to_next_event, sample.after_totality)

    def advance(self, jd: float, hint: StepHint, use_approach: bool, factor: float) -> float:
        step = hint.to_next_event if use_approach else hint.after_totality
        return jd + factor * step
