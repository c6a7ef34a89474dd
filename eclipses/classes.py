"""
日食・月食計算で共通に使う定数、例外、設定、観測地クラス

このモジュール内のクラスは、時刻をすべてUTC(ephem.Date)で受け取る。
ソルバー内部の時刻はTDBのユリウス日で扱い、地方時は変換メソッド以外では考慮しない。
"""
import os
import math
import ephem
import configparser
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any

from pygments.lexer import RegexLexer
from pygments.token import Name, String, Number, Operator, Punctuation, Comment, Text
from rich.console import Console

import logging
logger = logging.getLogger(__name__)

console = Console()


# ===== 定数定義 =====
class Constants:
    """定数クラス"""
    DEFAULT_TIMEZONE = 9.0
    DEFAULT_ECHO = "Yes"
    DEFAULT_LOG = "No"
    DEFAULT_LANG = "ja"
    CONFIG_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.ini")

    """天文定数"""
    AU = 149597870.7                # 天文単位(km)
    SECONDS_PER_DAY = 86400.0
    JD_OF_EPHEM_EPOCH = 2415020.0   # ephem.Date(0) = 1899/12/31 12:00 のユリウス日
    PI_OVER_TWO = 1.5707963267948966

    """探索の既定値"""
    LUNAR_STEP_SECONDS = 1.0        # 月食探索の基本刻み(秒)
    SOLAR_STEP_SECONDS = 0.5        # 日食探索の基本刻み(秒)
    DEFAULT_ACCURACY = 1.0          # 月以外の衛星の探索精度(秒)
    MAX_SPAN_DAYS = 400.0           # 探索を打ち切るまでの最大日数
    MAX_ITERATIONS = 5000000        # 探索を打ち切るまでの最大反復回数

    KIND_LUNAR = "lunar"
    KIND_SOLAR = "solar"

    """表示ラベル"""
    LABELS = {
        "en": {
            "penumbral": "penumbral",
            "full_penumbral": "full penumbral",
            "partial": "partial",
            "total": "total",
            "annular": "annular",
            "no_eclipse": "no eclipse",
            "lunar": "lunar eclipse",
            "solar": "solar eclipse",
        },
        "ja": {
            "penumbral": "半影食",
            "full_penumbral": "皆既半影食",
            "partial": "部分食",
            "total": "皆既食",
            "annular": "金環食",
            "no_eclipse": "食なし",
            "lunar": "月食",
            "solar": "日食",
        },
    }

    """エラーメッセージ"""
    ERR_HERE = "環境変数Hereへの代入はObserverコマンドの返り値を指定してください。"
    ERR_TZ = "時差の設定は-12から14の範囲で指定してください。"
    ERR_TIME = "観測時刻の設定はephem.Dateの形式で指定してください。"
    ERR_LANG = "言語の設定は en または ja を指定してください。"
    ERR_TARGET = "Target body must be the Moon or any other natural satellite."
    ERR_CENTRAL = "Target body must orbit around the observer."


# ===== 例外 =====
class EclipseError(Exception):
    """日食・月食計算の基底例外"""


class ConfigurationError(EclipseError):
    """対象天体や観測地の指定が不正"""


class EphemerisError(EclipseError):
    """暦計算が対象天体・モードに対応していない"""


class GeometryError(EclipseError):
    """視半径が0など、影の幾何が計算できない入力"""


class SearchBoundError(EclipseError):
    """探索が最大日数・最大反復回数を超えた"""

    def __init__(self, message: str, last_jd: float = 0.0, iterations: int = 0):
        super().__init__(message)
        self.last_jd = last_jd
        self.iterations = iterations


def boolean_setter(key_name: str):
    """
    1/0, on/off, true/false, yes/no を Yes/No に変換するデコレータ
    """
    def decorator(func):
        def wrapper(self, value):
            s_val = str(value).lower()
            if s_val in ["0", "0.0", "off", "false", "no"]:
                final_val = "No"
            elif s_val in ["1", "1.0", "on", "true", "yes"]:
                final_val = "Yes"
            else:
                final_val = value

            self.env[key_name] = final_val
            return f"{key_name} mode: {self.env.get(key_name)}"
        return wrapper
    return decorator


# ===== 観測地クラス =====
class SSOObserver:
    """
    観測地オブジェクト

    地球上の観測地は緯度・経度・標高で指定する。
    木星などの衛星の食を計算するときは、惑星中心の観測地を planetocentric() で作る。
    """

    def __init__(
        self,
        attr: str,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        elev: float = 0,
        mother_body: str = "Earth"
    ):
        self.attr = attr
        self.lat, self.lon, self.elev = lat, lon, elev
        self.mother_body = mother_body
        self.ephem_obs = ephem.Observer()
        self.ephem_obs.pressure = 0     # 赤経・赤緯に大気差を入れない

        if lat is not None:
            self.ephem_obs.lat, self.ephem_obs.lon = str(lat), str(lon)
            self.ephem_obs.elevation = float(elev)

    @classmethod
    def planetocentric(cls, body: str) -> "SSOObserver":
        """惑星中心の観測地"""
        return cls(f"{body} center", mother_body=body)

    @classmethod
    def from_ephem(cls, attr: str, obs: ephem.Observer) -> "SSOObserver":
        """ephem.Observer から観測地を作る"""
        return cls(attr, math.degrees(obs.lat), math.degrees(obs.lon), obs.elevation)

    @property
    def on_earth(self) -> bool:
        return self.mother_body == "Earth"

    @property
    def geocentric(self) -> bool:
        """緯度経度が未設定なら地球中心として扱う"""
        return self.lat is None

    def __repr__(self) -> str:
        if not self.on_earth:
            return f"({self.attr})\n Body: {self.mother_body}"
        return f"({self.attr})\n Lat: {self.lat}\n Lon: {self.lon}\n Elev: {self.elev}"


# ===== システム設定管理クラス =====
class SSOSystemConfig:
    """システム設定管理クラス"""

    def __init__(self):
        self.env = {
            "Tz"    : Constants.DEFAULT_TIMEZONE,
            "Echo"  : Constants.DEFAULT_ECHO,
            "Log"   : Constants.DEFAULT_LOG,
            "Lang"  : Constants.DEFAULT_LANG,
            "Time"  : ephem.now(),
            "Here"  : SSOObserver("Here", 0.0, 0.0, 0.0),
        }
        self.eclipse = {
            "MaxSpanDays"   : Constants.MAX_SPAN_DAYS,
            "MaxIterations" : Constants.MAX_ITERATIONS,
            "LunarStep"     : Constants.LUNAR_STEP_SECONDS,
            "SolarStep"     : Constants.SOLAR_STEP_SECONDS,
            "Accuracy"      : Constants.DEFAULT_ACCURACY,
            "Provider"      : "ephem",
        }

    def load(self, path: str = Constants.CONFIG_FILE) -> "SSOSystemConfig":
        """構成情報 config.ini を読み込む（ファイルが無ければ既定値のまま）"""
        ini = configparser.ConfigParser()
        if not ini.read(path, encoding="utf-8"):
            logger.warning(f"config file not found: {path}")
            return self

        if ini.has_section("Here"):
            here = ini["Here"]
            self.env["Here"] = SSOObserver(
                "Here",
                float(here.get("lat", "0")),
                float(here.get("lon", "0")),
                float(here.get("elev", "0")),
            )
        if ini.has_section("ENV"):
            env = ini["ENV"]
            if "Tz" in env:
                self.set_Tz(float(env["Tz"]))
            if "Log" in env:
                self.set_Log(env["Log"].strip('"'))
            if "Echo" in env:
                self.set_Echo(env["Echo"].strip('"'))
            if "Lang" in env:
                self.set_Lang(env["Lang"].strip('"'))
        if ini.has_section("Eclipse"):
            section = ini["Eclipse"]
            for key in ("MaxSpanDays", "LunarStep", "SolarStep", "Accuracy"):
                if key in section:
                    self.eclipse[key] = section.getfloat(key)
            if "MaxIterations" in section:
                self.eclipse["MaxIterations"] = section.getint("MaxIterations")
            if "Provider" in section:
                self.eclipse["Provider"] = section["Provider"].strip('"')

        logger.debug(f"config loaded: env={self.env} eclipse={self.eclipse}")
        return self

    @boolean_setter("Echo")
    def set_Echo(self, value):
        """エコーモードを設定"""
        pass

    def set_Log(self, value) -> str:
        """ログモードを設定 (Yes/No もしくは DEBUG などのレベル名)"""
        s_val = str(value).strip('"')
        if s_val.upper() in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            self.env["Log"] = s_val.upper()
            return f"Log mode: {self.env['Log']}"
        return self._set_log_flag(s_val)

    @boolean_setter("Log")
    def _set_log_flag(self, value):
        pass

    def set_Tz(self, value: float) -> str:
        """タイムゾーンを設定"""
        if -12.0 <= value <= 14.0:
            self.env["Tz"] = float(value)
            return f"UTCからの時差: {self.env['Tz']:+.2f}"
        raise AttributeError(Constants.ERR_TZ)

    def set_Lang(self, value: str) -> str:
        """表示言語を設定"""
        if value not in Constants.LABELS:
            raise AttributeError(Constants.ERR_LANG)
        self.env["Lang"] = value
        return f"Language: {value}"

    def set_Here(self, value) -> str:
        """デフォルト観測地を設定"""
        if isinstance(value, ephem.Observer):
            value = SSOObserver.from_ephem("Here", value)
        if not isinstance(value, SSOObserver):
            raise AttributeError(Constants.ERR_HERE)
        self.env["Here"] = value
        return f"Default observer: {self.env['Here']}"

    def set_Time(self, value) -> str:
        """観測時刻を設定"""
        if not isinstance(value, ephem.Date):
            raise AttributeError(Constants.ERR_TIME)
        self.env["Time"] = value
        return f"Observation date_time: {self.env['Time']}"

    def label(self, key: str) -> str:
        """現在の言語での表示ラベル"""
        return Constants.LABELS[self.env["Lang"]].get(key, key)

    def search_settings(self) -> Dict[str, Any]:
        """ソルバーに渡す探索パラメタ"""
        return {
            "max_span_days": self.eclipse["MaxSpanDays"],
            "max_iterations": self.eclipse["MaxIterations"],
            "lunar_step": self.eclipse["LunarStep"],
            "solar_step": self.eclipse["SolarStep"],
        }

    def toUTC(self, tz_date: str) -> datetime:
        """ローカル時刻をUTCに変換"""
        tz = timezone(timedelta(hours=self.env["Tz"]))
        dt = datetime.strptime(tz_date, "%Y/%m/%d %H:%M:%S").replace(tzinfo=tz)
        return dt.astimezone(timezone.utc)

    def fromUTC(self, utc_val) -> str:
        """UTCをローカル時刻に変換してフォーマット"""
        tz_offset = self.env['Tz']

        if isinstance(utc_val, ephem.Date):
            dt_utc = utc_val.datetime()
        elif isinstance(utc_val, datetime):
            dt_utc = utc_val
        else:
            dt_utc = datetime.strptime(str(utc_val), "%Y/%m/%d %H:%M:%S")

        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
        tz = timezone(timedelta(hours=tz_offset))
        dt_local = dt_utc.astimezone(tz)

        date_part = dt_local.strftime("%Y/%m/%d")
        time_part = dt_local.strftime("%H:%M:%S")

        sign = "+" if tz_offset >= 0 else ""
        offset_str = f"[{sign}{tz_offset}]"

        return f"{date_part:<10} {time_part:<8} {offset_str}"


class SSOLexer(RegexLexer):
    """シェル入力のシンタックスハイライト"""
    name = 'sso'

    tokens = {
        'root': [
            # コメント
            (r'//.*', Comment.Single),
            # 数値
            (r'-?\d+\.?\d*([eE][+-]?\d+)?', Number),
            # 文字列
            (r'"[^"]*"|\'[^\']*\'', String),
            # 演算子
            (r'->|=', Operator),
            # 区切り文字
            (r'[(),]', Punctuation),
            # 天体名・コマンド名
            (r'[A-Z][a-zA-Z0-9_]*', Name.Class),
            # 変数名
            (r'[a-z][a-zA-Z0-9_]*', Name.Variable),
            # 空白
            (r'\s+', Text),
        ]
    }
