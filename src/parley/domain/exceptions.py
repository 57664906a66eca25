"""Domain exceptions."""


class PersonaLoadError(Exception):
    """ペルソナのテキストを読み込めない場合に発生する例外

    デフォルトペルソナが読み込めない場合は起動できないため致命的に扱う。
    """

    def __init__(self, persona: str, message: str = "") -> None:
        """初期化

        Args:
            persona: 読み込めなかったペルソナのキー
            message: エラーメッセージ（オプション）
        """
        self.persona = persona
        super().__init__(message or f"Persona {persona} could not be loaded")


class UnknownPersonaError(Exception):
    """存在しないペルソナが指定された場合に発生する例外"""

    def __init__(self, persona: str, available: list[str]) -> None:
        self.persona = persona
        self.available = available
        super().__init__(f"Persona {persona} is not available")
