"""シェルのヘルプ文"""

RULE = "-" * 40

help_help = [
    RULE,
    "書き方",
    "  月食       Sun -> 観測地 -> Moon",
    "  日食       Sun -> Moon -> 観測地",
    "  衛星の食   Sun -> Jupiter -> Io",
    "  設定       Tz = 9 / Lang = 'en' / Time = Date('2026/08/12 12:00:00')",
    "",
    "Time から先で最初に起きる食を探す（help Time）。",
    "観測地は Observer(緯度, 経度, 標高) で作る。Here は config.ini [Here] の地点。",
    "大文字で始まる名前は天体名（help Body）。Tab で補完できる。",
    "exit / quit で終了。",
    RULE,
    "コマンド: Date Now Observer Planet Satellite Lunar Solar",
    "設定: Time Here Tz Lang Echo Log",
]


command_help = {
    "Body":      "食の計算に使える天体:",
    "Time":      "探索の開始時刻\n"
                 "例: Time = Date('2007/03/03 12:00:00')   秒まで書くこと",
    "Date":      "地方時の文字列を日時にする。時差は Tz。引数なしなら Time を返す",
    "Now":       "現在時刻（UTC）",
    "Observer":  "地球上の観測地\n"
                 "例: Here = Observer(40.4, -3.68333, 667)   緯度, 経度, 標高(m)\n"
                 "    引数なしなら地心",
    "Planet":    "惑星中心の観測地。衛星の食に使う\n"
                 "例: Planet('Jupiter')",
    "Satellite": "衛星名を確かめて返す\n"
                 "例: Satellite('Io')",
    "Lunar":     "月食と衛星の食\n"
                 "例: Lunar()            月食\n"
                 "    Lunar('Io', 10)    木星の影に入るイオ、精度10秒",
    "Solar":     "日食\n"
                 "例: Solar(Here)",
    "Tz":        "UTCからの時差（-12 から 14）",
    "Lang":      "出力の言語 ja / en",
    "Echo":      "結果を表示するか on / off",
    "Log":       "ログ出力 on / off または DEBUG, INFO などのレベル名",
}
