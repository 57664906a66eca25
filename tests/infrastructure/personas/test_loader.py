"""ペルソナ読み込みのテスト"""

from pathlib import Path

import pytest

from parley.config import PersonaConfig, PersonaFiles, PersonasConfig
from parley.domain.exceptions import PersonaLoadError, UnknownPersonaError
from parley.infrastructure.personas import PersonaLibrary, load_persona


def write_persona(directory: Path, key: str) -> None:
    (directory / f"{key}_personality.txt").write_text(f"{key} personality\n")
    (directory / f"{key}_characterInfo.txt").write_text(f"{key} background\n")
    (directory / f"{key}_prompt.txt").write_text(f"{key} style\n")


def make_config(directory: Path, default: str = "doji") -> PersonasConfig:
    return PersonasConfig(
        directory=str(directory),
        default=default,
        available={
            "doji": PersonaConfig(
                name="Doji",
                files=PersonaFiles.for_key("doji"),
                confirmation="Doji is back!",
            ),
            "whimsy": PersonaConfig(name="Whimsy", files=PersonaFiles.for_key("whimsy")),
        },
    )


class TestLoadPersona:
    """load_personaのテスト"""

    def test_load(self, tmp_path: Path) -> None:
        write_persona(tmp_path, "doji")
        config = PersonaConfig(
            name="Doji", files=PersonaFiles.for_key("doji"), confirmation="Hi!"
        )

        persona = load_persona("doji", config, tmp_path)

        assert persona.key == "doji"
        assert persona.name == "Doji"
        assert persona.personality == "doji personality"
        assert persona.system_instructions == (
            "doji personality\n\ndoji background\n\ndoji style"
        )
        assert persona.confirmation == "Hi!"

    def test_missing_file(self, tmp_path: Path) -> None:
        config = PersonaConfig(name="Doji", files=PersonaFiles.for_key("doji"))

        with pytest.raises(PersonaLoadError) as exc_info:
            load_persona("doji", config, tmp_path)
        assert exc_info.value.persona == "doji"


class TestPersonaLibrary:
    """PersonaLibraryのテスト"""

    @pytest.fixture
    def library(self, tmp_path: Path) -> PersonaLibrary:
        write_persona(tmp_path, "doji")
        write_persona(tmp_path, "whimsy")
        return PersonaLibrary(make_config(tmp_path))

    def test_get(self, library: PersonaLibrary) -> None:
        assert library.get("whimsy").name == "Whimsy"
        assert library.default_key == "doji"

    def test_unknown_key_falls_back_to_default(self, library: PersonaLibrary) -> None:
        assert library.get("nobody").key == "doji"

    def test_resolve_is_case_insensitive(self, library: PersonaLibrary) -> None:
        assert library.resolve("WHIMSY") == "whimsy"

    def test_resolve_unknown(self, library: PersonaLibrary) -> None:
        with pytest.raises(UnknownPersonaError) as exc_info:
            library.resolve("nobody")
        assert exc_info.value.available == ["Doji", "Whimsy"]

    def test_confirmation(self, library: PersonaLibrary) -> None:
        assert library.confirmation("doji") == "Doji is back!"
        assert library.confirmation("whimsy") == ""

    def test_missing_files_use_default_persona(self, tmp_path: Path) -> None:
        """デフォルト以外のファイルが無い場合はデフォルトで代用"""
        write_persona(tmp_path, "doji")

        library = PersonaLibrary(make_config(tmp_path))

        assert library.get("whimsy").personality == "doji personality"
        assert library.keys() == ["doji", "whimsy"]

    def test_missing_default_is_fatal(self, tmp_path: Path) -> None:
        write_persona(tmp_path, "whimsy")

        with pytest.raises(PersonaLoadError):
            PersonaLibrary(make_config(tmp_path))
