import logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

import sys
import cmd
import unicodedata

import readline  # 行編集と履歴
from lark import Token
from lark.exceptions import UnexpectedToken, UnexpectedEOF, UnexpectedCharacters

from interpreter import SSOInterpreter, GRAMMAR_FILE, create_parser
from classes import EclipseError, SSOLexer, console
from bodies import BODIES, PLANETS, satellites_of
from ssohelp import help_help, command_help
from completer import sso_completer

from prompt_toolkit import PromptSession
from prompt_toolkit.lexers import PygmentsLexer
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.styles.pygments import style_from_pygments_cls
from pygments.styles import get_style_by_name
from rich.panel import Panel

PROMPT = HTML('<ansicyan>eclipse</ansicyan><ansigray>></ansigray> ')
CONTINUE_PROMPT = "... "


def build_session(style_name: str = 'paraiso-dark') -> PromptSession:
    """DSL用のハイライトと補完を持つ入力セッション"""
    return PromptSession(
        lexer=PygmentsLexer(SSOLexer),
        completer=sso_completer,
        style=style_from_pygments_cls(get_style_by_name(style_name)),
    )


def apply_log_mode(log_mode: str) -> None:
    """設定 Log をルートロガーのレベルに反映"""
    root = logging.getLogger()
    if log_mode == "Yes":
        root.setLevel(logging.DEBUG)
    elif log_mode == "No":
        root.setLevel(logging.CRITICAL)
    else:
        root.setLevel(getattr(logging, log_mode, logging.CRITICAL))


def display_width(text: str) -> int:
    """全角文字を2桁として数えた表示幅"""
    return sum(2 if unicodedata.east_asian_width(c) in 'FWA' else 1 for c in text)


class SSOShell(cmd.Cmd):
    misc_header = "解説:"
    doc_header = "コマンド:"
    undoc_header = "説明のないコマンド:"

    def __init__(self, interp: SSOInterpreter = None, session: PromptSession = None):
        super().__init__()
        self.code_buffer = ""
        self.session = session or build_session()
        try:
            self.parser = create_parser()
        except FileNotFoundError:
            print(f"Error: '{GRAMMAR_FILE}' file not found.")
            sys.exit(1)
        self.interp = interp or SSOInterpreter()

    def intro_panel(self) -> Panel:
        provider = self.interp.config.eclipse["Provider"]
        text = (
            "[bold magenta]SSO 日食・月食計算[/bold magenta]\n"
            f"[dim]ephemeris: {provider}[/dim]\n\n"
            "[cyan]help でコマンド一覧、exit で終了[/cyan]"
        )
        return Panel(text, border_style="blue")

    def cmdloop(self, intro=None):
        console.print(self.intro_panel())
        self.code_buffer = ""
        stop = None
        while not stop:
            try:
                text = self.session.prompt(CONTINUE_PROMPT if self.code_buffer else PROMPT,
                                           reserve_space_for_menu=0)
            except EOFError:
                break
            except KeyboardInterrupt:
                # 入力途中の文は捨てる
                self.code_buffer = ""
                continue

            self.code_buffer += text + "\n"
            if self.code_buffer.strip():
                stop = self.onecmd(text)

    def emptyline(self):
        # cmd.Cmd は空行で直前のコマンドを繰り返すので抑止
        self.code_buffer = ""

    def execute(self, source: str):
        """DSLの文を実行して最後の結果を返す"""
        tree = self.parser.parse(source)
        logger.debug(tree.pretty())
        return self.interp.visit(tree)

    def show(self, res) -> None:
        if res is None or isinstance(res, Token) or self.interp.config.env["Echo"] != "Yes":
            return
        text = str(res)
        console.print(Panel(text, border_style="cyan") if "\n" in text else text)

    def default(self, line):
        if not line.strip():
            return
        apply_log_mode(self.interp.config.env["Log"])
        try:
            res = self.execute(self.code_buffer)
        except UnexpectedToken as e:
            # 文末で切れているときは続きの行を待つ
            if e.token.type != '$END':
                print(f"Syntax Error: {e}")
                self.code_buffer = ""
            return
        except UnexpectedEOF:
            return
        except UnexpectedCharacters as e:
            print(f"Syntax Error: {e}")
            self.code_buffer = ""
            return
        except (EclipseError, AttributeError, NameError) as e:
            console.print(f"[red]Error:[/red] {e}")
            self.code_buffer = ""
            return

        self.code_buffer = ""
        logger.info(res)
        self.show(res)

    def do_exit(self, arg):
        """終了"""
        console.print("bye")
        return True

    def do_quit(self, arg):
        """終了"""
        return True

    def do_EOF(self, arg):
        print()
        return True

    def do_help(self, arg):
        """help [コマンド名]"""
        self.code_buffer = ""
        if not arg:
            print("\n".join(help_help))
        elif arg == "Body":
            print(command_help["Body"])
            print(" ".join(BODIES.keys()))
            for planet in PLANETS:
                print(f"  {planet}: {' '.join(satellites_of(planet))}")
        elif arg in command_help:
            print(command_help[arg])
        else:
            return cmd.Cmd.do_help(self, arg)

    def print_topics(self, header, cmds, cmdlen, maxcol):
        if not cmds:
            return
        self.stdout.write(f"{header}\n")
        if self.ruler:
            self.stdout.write(self.ruler * display_width(header) + "\n")
        self.columnize(cmds, maxcol)
        self.stdout.write("\n")


def main():
    try:
        SSOShell().cmdloop()
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
