"""
画面に出力するフォーマットを行う

"""
from typing import Optional

from classes import SSOObserver, SSOSystemConfig
from eclipse import EclipseResult, EclipseEvent
from ephemeris import date_from_jd_tdb

import logging
logger = logging.getLogger(__name__)


class EclipseFormatter:
    """食の計算結果を整形して出力するクラス"""

    HEADINGS = {
        "en": {"max": "maximum", "type": "type", "visible": "visible", "yes": "yes", "no": "no",
               "duration": "duration", "none": "no events"},
        "ja": {"max": "食の最大", "type": "種類", "visible": "観測地から", "yes": "見える", "no": "見えない",
               "duration": "継続時間", "none": "現象なし"},
    }

    def __init__(self, config: SSOSystemConfig):
        self.config = config

    def _heading(self, key: str) -> str:
        return self.HEADINGS.get(self.config.env["Lang"], self.HEADINGS["en"])[key]

    def format_time(self, jd: float) -> str:
        """TDBのユリウス日を地方時の文字列に"""
        return self.config.fromUTC(date_from_jd_tdb(jd))

    def format_duration(self, seconds: float) -> str:
        m, s = divmod(int(round(seconds)), 60)
        h, m = divmod(m, 60)
        return f"{h:d}h {m:02d}m {s:02d}s"

    def format_event(self, event: EclipseEvent) -> str:
        """
        現象1つのフォーマット

        Args:
            event: EclipseEvent

        Returns:
            フォーマットされた文字列
        """
        return (f"{event.label:<10} {self.format_time(event.start)} - {self.format_time(event.end)}"
                f"  ({self._heading('duration')} {self.format_duration(event.duration())})")

    def format(self, result: EclipseResult, observer: Optional[SSOObserver] = None) -> str:
        """
        食の計算結果のフォーマット

        Args:
            result: solve の戻り値
            observer: 観測地（見出しに使う）

        Returns:
            フォーマットされた文字列
        """
        title = self.config.label(result.kind)
        if observer is not None:
            title += f" : {observer.attr}"
        lines = [title, f"{self._heading('type')}: {result.label}  ({result.target})"]
        if result.maximum > 0.0:
            lines.append(f"{self._heading('max')}: {self.format_time(result.maximum)}")
        if result.visible is not None:
            lines.append(f"{self._heading('visible')}: {self._heading('yes' if result.visible else 'no')}")

        if result.events:
            lines.append("")
            lines.extend(self.format_event(e) for e in result.events)
        else:
            lines.append(self._heading("none"))
        return "\n".join(lines)

    def format_observer(self, observer: SSOObserver) -> str:
        """観測地情報を整形"""
        if not observer.on_earth:
            return f"{observer.attr}\n中心天体：{observer.mother_body}"
        if observer.geocentric:
            return f"{observer.attr}\n地心"
        value = f"{observer.attr}"
        value += f"\n緯度：{observer.lat}"
        value += f"\n経度：{observer.lon}"
        value += f"\n標高：{observer.elev}"
        return value
