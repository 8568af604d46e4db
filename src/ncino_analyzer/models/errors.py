"""ncino-analyzerのカスタム例外クラス。"""


class AnalyzerError(Exception):
    """ncino-analyzerの基底例外クラス。"""


class InvalidInputError(AnalyzerError):
    """解析対象の入力がリストでない、または正規化できない場合の例外。"""

    def __init__(self, domain: str, detail: str = "") -> None:
        message = f"{domain} data must be provided as an array"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.domain = domain
        self.detail = detail


class NoMetadataError(AnalyzerError):
    """解析対象のメタデータが一つも指定されていない場合の例外。"""

    def __init__(self) -> None:
        super().__init__(
            "No metadata provided for analysis. Please provide fields, validation rules, or triggers."
        )


class UnsupportedFormatError(AnalyzerError):
    """サポート外のファイル形式が指定された場合の例外。"""

    def __init__(self, path: str) -> None:
        super().__init__(f"Unsupported file format: {path}")
        self.path = path


class MetadataParseError(AnalyzerError):
    """メタデータの読み込み・パースに失敗した場合の例外。"""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Unable to parse metadata from {source}: {reason}")
        self.source = source
        self.reason = reason


class CatalogError(AnalyzerError):
    """パターンカタログ定義の読み込みエラー。"""


class SalesforceCliError(AnalyzerError):
    """Salesforce CLI (sf) 実行エラー。"""

    def __init__(self, message: str, command: str, stderr: str, exit_code: int) -> None:
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.exit_code = exit_code
