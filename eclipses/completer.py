from prompt_toolkit.completion import WordCompleter

from bodies import BODIES

sso_completer = WordCompleter([
    'Date', 'Observer', 'Now', 'Lunar', 'Solar',        # 上位ほど優先順位が高い
    'Planet', 'Satellite',
    'Time', 'Here', 'Tz', 'Log', 'Echo', 'Lang',
    ### 天体 ###
    *BODIES.keys(),
], ignore_case=True)  # 大文字小文字を区別しない設定
