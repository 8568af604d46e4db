"""Salesforceメタデータレコードのデータモデル。

抽出ツールやアップロードファイルによってキー名が揺れる
(apiName / fullName, errorConditionFormula / formula, content / code など) ため、
入力境界でエイリアスを使って一つの正規形にそろえる。
"""

from typing import Any, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from ncino_analyzer.models.errors import InvalidInputError

MetadataDomain = Literal["fields", "validation_rules", "triggers"]


class _MetadataRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # 抽出結果の null / 空要素 / CSVの空セルはデフォルト値として扱う
        if value is None or value == "":
            field = cls.model_fields[info.field_name]
            return field.get_default(call_default_factory=True)
        return value


class FieldRecord(_MetadataRecord):
    """カスタム項目定義。"""

    api_name: str = Field(default="", validation_alias=AliasChoices("apiName", "fullName", "api_name"))
    label: str = ""
    type: str = ""
    description: str = ""


class ValidationRuleRecord(_MetadataRecord):
    """入力規則定義。数式 (error_condition_formula) がパターン照合の対象。"""

    api_name: str = Field(default="", validation_alias=AliasChoices("apiName", "fullName", "api_name"))
    active: bool = False
    description: str = ""
    error_condition_formula: str = Field(
        default="",
        validation_alias=AliasChoices("errorConditionFormula", "formula", "error_condition_formula"),
    )
    error_message: str = Field(default="", validation_alias=AliasChoices("errorMessage", "error_message"))
    error_display_field: str = Field(
        default="", validation_alias=AliasChoices("errorDisplayField", "error_display_field")
    )


class TriggerRecord(_MetadataRecord):
    """Apexトリガー定義。ソース全文 (content) がパターン照合の対象。"""

    name: str = ""
    active: bool = False
    content: str = Field(default="", validation_alias=AliasChoices("content", "code", "body"))


class MetadataBundle(BaseModel):
    """解析対象メタデータ一式。Noneはそのドメインが指定されていないことを表す。"""

    fields: list[dict[str, Any]] | None = None
    validation_rules: list[dict[str, Any]] | None = None
    triggers: list[dict[str, Any]] | None = None

    def is_empty(self) -> bool:
        return self.fields is None and self.validation_rules is None and self.triggers is None


RecordT = TypeVar("RecordT", bound=_MetadataRecord)


def normalize_records(records: Any, model: type[RecordT], domain: str) -> list[RecordT]:
    """生の入力をレコードモデルのリストに正規化する。

    Raises:
        InvalidInputError: 入力がリストでない、または要素を正規化できない場合。
    """
    if not isinstance(records, (list, tuple)):
        raise InvalidInputError(domain)

    normalized: list[RecordT] = []
    for index, record in enumerate(records):
        if isinstance(record, model):
            normalized.append(record)
            continue
        try:
            normalized.append(model.model_validate(record))
        except ValidationError as e:
            raise InvalidInputError(domain, f"element {index} is not a valid record ({e.error_count()} errors)") from e
    return normalized
