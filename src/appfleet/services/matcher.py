"""アプリ名パターン（ワイルドカード／正規表現）の照合関数を生成する。"""

import re
from collections.abc import Callable

from appfleet.models.errors import CompilationError
from appfleet.models.fleet import ApplicationRecord

CompiledMatcher = Callable[[ApplicationRecord], bool]

# これらの文字を1つでも含むパターンは正規表現として扱う
_REGEX_HINT_RE = re.compile(r"[\^$|+?()\[\]\\]")


def is_regex_like(pattern: str) -> bool:
    """パターンが正規表現として解釈されるかを判定する。"""
    return _REGEX_HINT_RE.search(pattern) is not None


def _glob_to_regex(pattern: str) -> str:
    """ワイルドカードパターンを完全一致の正規表現に変換する。"""
    escaped = re.escape(pattern)
    wildcard = escaped.replace(r"\*", ".*").replace(r"\?", ".")
    return f"^{wildcard}$"


def _match_all(record: ApplicationRecord) -> bool:
    return True


def compile_matcher(pattern: str | None) -> CompiledMatcher:
    """パターンからアプリケーションレコードの照合関数を生成する。

    空またはNoneのパターンはすべてのレコードに一致する。
    正規表現とみなされたパターンはアンカーを付けずにそのままコンパイルし、
    それ以外は ``*`` / ``?`` をワイルドカードとして名前全体に一致させる。

    Args:
        pattern: ワイルドカードまたは正規表現のパターン。

    Returns:
        ApplicationRecordを受け取りboolを返す照合関数。

    Raises:
        CompilationError: 正規表現として不正な場合。
    """
    if not pattern:
        return _match_all

    regex_like = is_regex_like(pattern)
    source = pattern if regex_like else _glob_to_regex(pattern)
    try:
        regex = re.compile(source)
    except re.error as e:
        raise CompilationError(pattern, str(e)) from e
    # ワイルドカードは名前全体（末尾の改行を含む）に一致させる
    test = regex.search if regex_like else regex.fullmatch

    def matcher(record: ApplicationRecord) -> bool:
        name = record.display_name
        if not name:
            return False
        return test(name) is not None

    return matcher
