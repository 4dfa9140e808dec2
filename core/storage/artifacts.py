from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

BUILD_ARTIFACTS_DIR = "elm-stuff"
GENERATED_CODE_SUBPATH: tuple[str, ...] = (
    "generated-code",
    "elm-community",
    "elm-test",
)
GENERATED_SOURCE_EXTENSION = ".elm"
COMPILED_OUTPUT_NAME = "elmTestOutput.js"
MANIFEST_NAME = "elm.json"


@dataclass(frozen=True)
class GeneratedCodeLayout:
    """定義產生程式碼在專案 build 目錄下的固定路徑。

    Args:
        project_root: 專案根目錄（elm.json 所在目錄）。
    """

    project_root: Path

    @property
    def generated_code_dir(self) -> Path:
        """取得 generated-code 根目錄。

        Returns:
            ``elm-stuff/generated-code/elm-community/elm-test`` 路徑。
        """
        return self.project_root / BUILD_ARTIFACTS_DIR / Path(*GENERATED_CODE_SUBPATH)

    @property
    def generated_src_dir(self) -> Path:
        """取得產生原始碼的 source directory。"""
        return self.generated_code_dir / "src"

    def program_path(self, module_name: str) -> Path:
        """將 dotted module 名稱對應為巢狀目錄下的原始碼路徑。

        Args:
            module_name: 如 ``Test.Generated.Main1a2b``。

        Returns:
            如 ``.../src/Test/Generated/Main1a2b.elm``。
        """
        *parents, leaf = module_name.split(".")
        return self.generated_src_dir.joinpath(*parents, leaf + GENERATED_SOURCE_EXTENSION)

    def compiled_output_path(self) -> Path:
        """取得產生程式編譯後的 JavaScript 路徑。"""
        return self.generated_code_dir / COMPILED_OUTPUT_NAME

    def write_program(self, module_name: str, source: str) -> Path:
        """寫出產生的原始碼，必要時建立目錄。

        Args:
            module_name: 完整 module 名稱。
            source: 原始碼內容。

        Returns:
            寫出的檔案路徑。
        """
        path = self.program_path(module_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    def manifest_path(self) -> Path:
        """取得 generated-code 目錄下的 elm.json 路徑。"""
        return self.generated_code_dir / MANIFEST_NAME

    def write_manifest(self, contents: dict) -> Path:
        """寫出 generated-code 目錄專用的 elm.json（4 空白縮排、結尾換行）。"""
        path = self.manifest_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(contents, indent=4) + "\n", encoding="utf-8")
        return path
