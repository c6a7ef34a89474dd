import os
from lark import Lark, Token
from lark.visitors import Interpreter
import ephem    # 型を参照するためにインポート

from classes import Constants, ConfigurationError, SSOObserver, SSOSystemConfig
from bodies import BODIES, PLANETS, get_central_body, is_natural_satellite
from eclipse import solve
from ephemeris import EphemerisConfig, EphemerisProvider, create_provider
from formatter import EclipseFormatter

import logging
logger = logging.getLogger(__name__)

GRAMMAR_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "eclipse.lark")


def create_parser() -> Lark:
    """DSLのパーサ"""
    with open(GRAMMAR_FILE, "r", encoding="utf-8") as f:
        grammar = f.read()
    return Lark(grammar, parser='lalr')


class SSOInterpreter(Interpreter):
    def __init__(self, config: SSOSystemConfig = None):
        self.variables = {}
        self.body = {}

        self.config = config or SSOSystemConfig().load()  # 環境変数 etc.
        self.formatter = EclipseFormatter(self.config)
        self._provider = None

    @property
    def provider(self) -> EphemerisProvider:
        # skyfield は暦ファイルの読み込みが重いので最初の計算まで作らない
        if self._provider is None:
            self._provider = create_provider(self.config.eclipse["Provider"])
        return self._provider

    # --- 代入系 ---
    def assign_var(self, tree):
        # assignment: VAR_NAME "=" expr
        name = tree.children[0].value
        expr = self.visit(tree.children[1])

        self.variables[name] = expr
        return f"{name}: {self._reformat(expr)}"

    def assign_body(self, tree):
        # assignment: BODY_NAME "=" expr
        name = tree.children[0].value
        value = self.visit(tree.children[1])

        # 環境変数への代入は設定オブジェクトのsetterで処理
        if name in self.config.env.keys():
            method = getattr(self.config, f"set_{name}")
            return method(value)

        if name in BODIES:
            raise ConfigurationError(f"{name} is a reserved body name")
        self.body[name] = value
        return f"{name}: {self._reformat(value)}"

    def _reformat(self, value):
        match value:
            case SSOObserver():
                return self.formatter.format_observer(value)
            case ephem.Date():
                return self.config.fromUTC(value)
            case _:
                return value

    # --- 演算系 ---
    def arrow_op(self, tree):
        """
        Sun -> 観測地 -> Moon : 月食（観測地の天体の影に月が入る）
        Sun -> Moon -> 観測地 : 日食（観測地から見て月が太陽を隠す）
        観測地には Observer、Here、惑星名（惑星中心）が使える
        """
        left = self.visit(tree.children[0])
        right = self.visit(tree.children[1])
        logger.debug(f"\nleft:{left}\nright:{right}")

        # 1. Sun -> X
        if left == "Sun":
            return ("Sun", right)

        # 2. (Sun, X) -> Y
        if isinstance(left, tuple):
            _sun, middle = left
            if self._is_eclipsed_body(right):
                return self.eclipse(Constants.KIND_LUNAR, right, self._observer(middle, right))
            if self._is_eclipsed_body(middle):
                return self.eclipse(Constants.KIND_SOLAR, middle, self._observer(right, middle))

        return f"Error: Invalid arrow operation {left} -> {right}"

    def _is_eclipsed_body(self, value) -> bool:
        return isinstance(value, str) and (value == "Moon" or is_natural_satellite(value))

    def _observer(self, value, target: str) -> SSOObserver:
        """観測地。惑星名なら惑星中心、地球の衛星（月）なら地上の観測地"""
        if isinstance(value, SSOObserver):
            return value
        if value in PLANETS:
            return SSOObserver.planetocentric(value)
        if value == "Earth":
            return SSOObserver("Earth")
        raise ConfigurationError(f"{value} cannot be used as an observer of {target}")

    def eclipse(self, kind: str, target: str, observer: SSOObserver, accuracy: float = None) -> str:
        """Time 以降の最初の食を計算して整形する"""
        if get_central_body(target) != observer.mother_body:
            raise ConfigurationError(Constants.ERR_CENTRAL)

        time = self.config.env["Time"]
        eph_config = EphemerisConfig(target, topocentric=kind == Constants.KIND_SOLAR)
        logger.debug(f"eclipse: kind={kind} target={target} observer={observer!r} time={time}")
        result = solve(
            time, observer, eph_config, accuracy or self.config.eclipse["Accuracy"],
            provider=self.provider, kind=kind, lang=self.config.env["Lang"],
            **self.config.search_settings(),
        )
        return self.formatter.format(result, observer)

    # --- プリミティブ・変数参照 ---
    def number(self, tree):
        # number: SIGNED_NUMBER
        return float(tree.children[0].value)

    def string_literal(self, tree):
        # 文字列 "..." の中身を取り出す
        return tree.children[0].value[1:-1]

    def var_load(self, tree):
        name = tree.children[0].value
        if name not in self.variables:
            raise NameError(f"variable '{name}' is not defined")
        return self.variables[name]

    def body_load(self, tree):
        name = tree.children[0].value

        # 内部config変数
        if name in self.config.env.keys():
            return self.config.env[name]

        if name == "Now":
            return ephem.now()

        # 登録済みオブジェクト
        if name in self.body:
            return self.body[name]

        # 天体名はそのまま名前として扱う
        if name in BODIES:
            return name

        raise NameError(f"'{name}' is not defined")

    # --- 関数呼び出し ---
    def funccall(self, tree):
        # funccall: BODY_NAME "(" [arglist] ")"
        attr = tree.children[0].value
        logger.debug(f"funccall: name={attr}")

        args = []
        if len(tree.children) > 1:
            child = tree.children[1]
            if hasattr(child, 'data'):  # 省略時は None が入る
                args = self.visit(child)

        match attr:
            case "Date":
                if not args:
                    return self.config.env["Time"]
                return ephem.Date(self.config.toUTC(args[0]))
            case "Now":
                return ephem.now()
            case "Observer":
                return SSOObserver(attr, *args)
            case "Planet":
                if not args or args[0] not in PLANETS:
                    raise ConfigurationError(f"Planet() takes one of {', '.join(PLANETS)}")
                return SSOObserver.planetocentric(args[0])
            case "Satellite":
                if not args or not is_natural_satellite(args[0]):
                    raise ConfigurationError(Constants.ERR_TARGET)
                return args[0]
            case "Lunar":
                # Lunar([target], [accuracy])
                target = args[0] if args else "Moon"
                accuracy = args[1] if len(args) > 1 else None
                central = get_central_body(target)
                observer = SSOObserver("Earth") if central == "Earth" else SSOObserver.planetocentric(central)
                return self.eclipse(Constants.KIND_LUNAR, target, observer, accuracy)
            case "Solar":
                # Solar([observer], [target])
                observer = args[0] if args else self.config.env["Here"]
                target = args[1] if len(args) > 1 else "Moon"
                return self.eclipse(Constants.KIND_SOLAR, target, self._observer(observer, target))

        raise NameError(f"Unknown command '{attr}'")

    def arglist(self, tree):
        # 引数リストを評価してPythonのリストとして返す
        return [self.visit(child) for child in tree.children]

    def start(self, tree):
        # 子要素(statement)を一つずつ visit して、最後の実行結果だけを返す
        last_result = None
        for child in tree.children:
            res = self.visit(child)
            if not isinstance(res, Token):
                last_result = res
        return last_result
