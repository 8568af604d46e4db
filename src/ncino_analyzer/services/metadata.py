"""Salesforceメタデータの読み込みと、Salesforce CLIによる組織からの抽出。"""

import asyncio
import csv
import json
import logging
import os
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from ncino_analyzer.config import AnalyzerConfig
from ncino_analyzer.models.errors import (
    MetadataParseError,
    SalesforceCliError,
    UnsupportedFormatError,
)
from ncino_analyzer.models.metadata import MetadataBundle, MetadataDomain

logger = logging.getLogger(__name__)

# JSONオブジェクト内でドメインのレコード配列を保持するキー
_DOMAIN_KEYS: dict[MetadataDomain, tuple[str, ...]] = {
    "fields": ("fields",),
    "validation_rules": ("validationRules", "validation_rules"),
    "triggers": ("triggers",),
}

# 単一レコードを表すXMLルート要素 → ドメイン
_XML_RECORD_TAGS: dict[str, MetadataDomain] = {
    "CustomField": "fields",
    "ValidationRule": "validation_rules",
}
_CUSTOM_OBJECT_CHILDREN: dict[MetadataDomain, str] = {
    "fields": "fields",
    "validation_rules": "validationRules",
}

FIELD_SUFFIX = ".field-meta.xml"
VALIDATION_RULE_SUFFIX = ".validationRule-meta.xml"
TRIGGER_SUFFIX = ".trigger"


def _get_namespace(root: ET.Element) -> str:
    """ルート要素のタグから {uri} 形式の名前空間を取り出す。"""
    if root.tag.startswith("{"):
        return root.tag.split("}", 1)[0] + "}"
    return ""


def _local_name(tag: str) -> str:
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def _element_to_dict(element: ET.Element) -> dict[str, Any]:
    """直下の子要素をローカル名 → テキストの辞書に変換する。"""
    record: dict[str, Any] = {}
    for child in element:
        record[_local_name(child.tag)] = (child.text or "").strip()
    return record


def _trigger_is_active(trigger_path: Path) -> bool:
    """トリガーの -meta.xml の status を参照する。メタファイルがなければ有効とみなす。"""
    meta_path = trigger_path.with_name(trigger_path.name + "-meta.xml")
    if not meta_path.exists():
        return True
    try:
        root = ET.parse(meta_path).getroot()
    except ET.ParseError as e:
        raise MetadataParseError(str(meta_path), str(e)) from e
    status = root.findtext(f"{_get_namespace(root)}status")
    return status != "Inactive"


class MetadataLoader:
    """ファイル・文字列・SFDXソースツリーからメタデータレコードを読み込む。"""

    def load_file(self, path: Path, domain: MetadataDomain) -> list[dict[str, Any]]:
        """メタデータファイルを読み込み、ドメインのレコードリストを返す。

        Args:
            path: .json / .xml / .csv / .trigger ファイルのパス。
            domain: 読み込むメタデータの種類。

        Returns:
            レコード (dict) のリスト。

        Raises:
            UnsupportedFormatError: 拡張子がサポート外の場合。
            MetadataParseError: ファイルが存在しない、またはパースできない場合。
        """
        suffix = path.suffix.lower()
        if suffix not in (".json", ".xml", ".csv", TRIGGER_SUFFIX):
            raise UnsupportedFormatError(str(path))
        if not path.is_file():
            raise MetadataParseError(str(path), "file not found")

        logger.debug("Loading %s metadata from %s", domain, path)
        if suffix == ".csv":
            return self._parse_csv(path)
        if suffix == TRIGGER_SUFFIX:
            return [
                {
                    "name": path.stem,
                    "content": path.read_text(encoding="utf-8"),
                    "active": _trigger_is_active(path),
                }
            ]

        content = path.read_text(encoding="utf-8")
        if suffix == ".json":
            return self._parse_json(content, domain, str(path))
        return self._parse_xml(content, domain, str(path))

    def parse_content(self, content: str, domain: MetadataDomain, source: str = "<content>") -> list[dict[str, Any]]:
        """JSONまたはXMLの文字列からレコードリストを返す。

        Raises:
            MetadataParseError: JSONとしてもXMLとしても解釈できない場合。
        """
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            if content.lstrip().startswith("<"):
                return self._parse_xml(content, domain, source)
            raise MetadataParseError(source, f"content is neither JSON nor XML ({e.msg})") from e
        return self._extract_records(data, domain, source)

    def load_source_tree(self, root: Path, object_name: str) -> MetadataBundle:
        """SFDXソース形式のディレクトリからオブジェクトのメタデータを読み込む。

        Args:
            root: sf project retrieve の出力ディレクトリ。
            object_name: 対象オブジェクトのAPI名 (例: LLC_BI__Loan__c)。

        Returns:
            項目・入力規則・トリガーを含むメタデータ一式。

        Raises:
            MetadataParseError: ディレクトリが存在しない、またはXMLをパースできない場合。
        """
        if not root.is_dir():
            raise MetadataParseError(str(root), "source directory not found")

        fields: list[dict[str, Any]] = []
        for path in sorted(root.rglob(f"*{FIELD_SUFFIX}")):
            if path.parent.name == "fields" and path.parent.parent.name == object_name:
                record = self._parse_single_xml(path)
                record["apiName"] = path.name.removesuffix(FIELD_SUFFIX)
                fields.append(record)

        validation_rules: list[dict[str, Any]] = []
        for path in sorted(root.rglob(f"*{VALIDATION_RULE_SUFFIX}")):
            if path.parent.name == "validationRules" and path.parent.parent.name == object_name:
                record = self._parse_single_xml(path)
                record["apiName"] = path.name.removesuffix(VALIDATION_RULE_SUFFIX)
                validation_rules.append(record)

        # トリガー名はオブジェクト名から __c を除いたものを接頭辞とする慣例
        prefix = object_name.removesuffix("__c")
        triggers = [
            self.load_file(path, "triggers")[0]
            for path in sorted(root.rglob(f"*{TRIGGER_SUFFIX}"))
            if path.name.startswith(prefix)
        ]

        logger.info(
            "Loaded %s from %s: %d fields, %d validation rules, %d triggers",
            object_name,
            root,
            len(fields),
            len(validation_rules),
            len(triggers),
        )
        return MetadataBundle(fields=fields, validation_rules=validation_rules, triggers=triggers)

    def _parse_json(self, content: str, domain: MetadataDomain, source: str) -> list[dict[str, Any]]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise MetadataParseError(source, f"invalid JSON ({e.msg})") from e
        return self._extract_records(data, domain, source)

    def _extract_records(self, data: Any, domain: MetadataDomain, source: str) -> list[dict[str, Any]]:
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in _DOMAIN_KEYS[domain]:
                if key in data:
                    records = data[key]
                    if not isinstance(records, list):
                        raise MetadataParseError(source, f"'{key}' must be an array")
                    return records
        raise MetadataParseError(source, f"no {domain} records found")

    def _parse_xml(self, content: str, domain: MetadataDomain, source: str) -> list[dict[str, Any]]:
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise MetadataParseError(source, f"invalid XML ({e})") from e

        ns = _get_namespace(root)
        tag = _local_name(root.tag)
        if _XML_RECORD_TAGS.get(tag) == domain:
            return [_element_to_dict(root)]
        if tag == "CustomObject" and domain in _CUSTOM_OBJECT_CHILDREN:
            return [_element_to_dict(e) for e in root.findall(f"{ns}{_CUSTOM_OBJECT_CHILDREN[domain]}")]
        raise MetadataParseError(source, f"XML root <{tag}> does not contain {domain} records")

    def _parse_single_xml(self, path: Path) -> dict[str, Any]:
        try:
            root = ET.parse(path).getroot()
        except ET.ParseError as e:
            raise MetadataParseError(str(path), f"invalid XML ({e})") from e
        return _element_to_dict(root)

    def _parse_csv(self, path: Path) -> list[dict[str, Any]]:
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return [dict(row) for row in csv.DictReader(f)]
        except csv.Error as e:
            raise MetadataParseError(str(path), f"invalid CSV ({e})") from e


def build_package_xml(object_name: str, api_version: str) -> str:
    """オブジェクト定義・項目・入力規則・全トリガーを取得するマニフェストを生成する。"""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<Package xmlns="http://soap.sforce.com/2006/04/metadata">
    <types>
        <members>{object_name}</members>
        <name>CustomObject</name>
    </types>
    <types>
        <members>{object_name}.*</members>
        <name>CustomField</name>
    </types>
    <types>
        <members>{object_name}.*</members>
        <name>ValidationRule</name>
    </types>
    <types>
        <members>*</members>
        <name>ApexTrigger</name>
    </types>
    <version>{api_version}</version>
</Package>
"""


class MetadataExtractor:
    """Salesforce CLI (sf) を使って組織からメタデータを取得する。"""

    _SF_INSTALL_HINT = (
        "Salesforce CLI not found. Install it with 'npm install --global @salesforce/cli' "
        "or set NCINO_ANALYZER_SF_COMMAND to the sf executable path."
    )
    _TARGET_ALIAS = "ncino-analyzer"

    def __init__(self, config: AnalyzerConfig, loader: MetadataLoader) -> None:
        self._config = config
        self._loader = loader

    async def extract(
        self,
        instance_url: str,
        access_token: str,
        object_name: str | None = None,
    ) -> MetadataBundle:
        """組織にログインしてオブジェクトのメタデータを取得する。

        Args:
            instance_url: 組織のインスタンスURL。
            access_token: セッションID (アクセストークン)。
            object_name: 対象オブジェクト。省略時は設定の default_object。

        Returns:
            取得したメタデータ一式。

        Raises:
            SalesforceCliError: sfコマンドが存在しない、または異常終了した場合。
        """
        object_name = object_name or self._config.default_object
        with tempfile.TemporaryDirectory(prefix="ncino-analyzer-") as tmp:
            project_dir = Path(tmp)
            self._write_project(project_dir, object_name)

            logger.info("Logging in to %s", instance_url)
            await self._run_sf(
                [
                    "org",
                    "login",
                    "access-token",
                    "--instance-url",
                    instance_url,
                    "--alias",
                    self._TARGET_ALIAS,
                    "--no-prompt",
                ],
                cwd=project_dir,
                env_token=access_token,
            )

            logger.info("Retrieving %s metadata", object_name)
            await self._run_sf(
                [
                    "project",
                    "retrieve",
                    "start",
                    "--manifest",
                    str(project_dir / "manifest" / "package.xml"),
                    "--target-org",
                    self._TARGET_ALIAS,
                ],
                cwd=project_dir,
            )
            return self._loader.load_source_tree(project_dir / "force-app", object_name)

    def _write_project(self, project_dir: Path, object_name: str) -> None:
        project = {
            "packageDirectories": [{"path": "force-app", "default": True}],
            "sourceApiVersion": self._config.api_version,
        }
        (project_dir / "sfdx-project.json").write_text(json.dumps(project, indent=2), encoding="utf-8")
        (project_dir / "force-app").mkdir()
        manifest_dir = project_dir / "manifest"
        manifest_dir.mkdir()
        (manifest_dir / "package.xml").write_text(
            build_package_xml(object_name, self._config.api_version), encoding="utf-8"
        )

    async def _run_sf(self, args: list[str], cwd: Path, env_token: str | None = None) -> str:
        command = [self._config.sf_command, *args]
        exit_code, stdout, stderr = await self._run_subprocess(command, cwd=str(cwd), env_token=env_token)
        if exit_code != 0:
            logger.error("sf command failed (exit %d): %s", exit_code, " ".join(command))
            raise SalesforceCliError(
                f"Salesforce CLI command failed: {' '.join(args[:3])}",
                command=" ".join(command),
                stderr=stderr,
                exit_code=exit_code,
            )
        return stdout

    async def _run_subprocess(
        self,
        args: list[str],
        cwd: str | None = None,
        env_token: str | None = None,
    ) -> tuple[int, str, str]:
        """サブプロセスを非同期で実行し、結果を返す。

        Args:
            args: 実行するコマンドと引数のリスト。
            cwd: 作業ディレクトリ。
            env_token: 指定時は SF_ACCESS_TOKEN 環境変数として渡す (コマンドラインに残さない)。

        Returns:
            (exit_code, stdout, stderr) のタプル。
        """
        env = None
        if env_token is not None:
            env = {**os.environ, "SF_ACCESS_TOKEN": env_token}
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=env,
            )
        except FileNotFoundError as e:
            raise SalesforceCliError(
                self._SF_INSTALL_HINT,
                command=" ".join(args),
                stderr=str(e),
                exit_code=127,
            ) from e
        stdout_bytes, stderr_bytes = await proc.communicate()
        return (
            proc.returncode or 0,
            stdout_bytes.decode("utf-8", errors="replace"),
            stderr_bytes.decode("utf-8", errors="replace"),
        )
