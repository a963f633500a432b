"""Strict record types for the owned data kinds.

Field names are the storage column names, including the camelCase columns of the
``addresses`` table. Only the field remapper builds these from submission payloads.
"""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _digits_or_text(value: object) -> object:
    # Ages and document numbers arrive as ints from some intake forms.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return _blank_to_none(value)


class StrictRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    _normalize_blank = field_validator("*", mode="before")(_blank_to_none)

    def to_payload(self) -> dict[str, Any]:
        """Return only the fields that were provided, JSON-serialisable."""
        return self.model_dump(mode="json", exclude_unset=True)


class PersonalDataFields(StrictRecord):
    nome_completo: str
    tem_nome_social: bool | None = None
    nome_social: str | None = None
    tem_nome_afetivo: bool | None = None
    nome_afetivo: str | None = None
    sexo: str | None = None
    idade: str | None = None
    rg: str | None = None
    rg_digito: str | None = None
    rg_uf: str | None = None
    rg_data_emissao: date | None = None
    cpf: str | None = None
    raca_cor: str | None = None
    data_nascimento: date | None = None
    nome_mae: str | None = None
    nome_pai: str | None = None
    nacionalidade: str | None = None
    nascimento_uf: str | None = None
    nascimento_cidade: str | None = None
    telefone: str | None = None
    email: str | None = None
    possui_internet: bool | None = None
    possui_device: bool | None = None
    is_gemeo: bool | None = None
    nome_gemeo: str | None = None
    trabalha: bool | None = None
    is_pcd: bool | None = None
    profissao: str | None = None
    empresa: str | None = None
    deficiencia: str | None = None

    _normalize_numbers = field_validator("idade", "rg", "rg_digito", "cpf", mode="before")(
        _digits_or_text
    )


class AddressFields(StrictRecord):
    cep: str | None = None
    logradouro: str | None = None
    numero: str | None = None
    complemento: str | None = None
    bairro: str | None = None
    nomeCidade: str | None = None  # noqa: N815
    ufCidade: str | None = None  # noqa: N815
    zona: str | None = None
    temLocalizacaoDiferenciada: bool | None = None  # noqa: N815
    localizacaoDiferenciada: str | None = None  # noqa: N815

    _normalize_numbers = field_validator("cep", "numero", mode="before")(_digits_or_text)


class DisciplineEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    disciplina: str


class SchoolingFields(StrictRecord):
    nivel_ensino: str | None = None
    itinerario_formativo: str | None = None
    ultima_serie_concluida: str | None = None
    estudou_no_ceeja: bool | None = None
    tem_progressao_parcial: bool | None = None
    progressao_parcial_disciplinas: list[DisciplineEntry] | None = None
    eliminou_disciplina: bool | None = None
    eliminou_disciplina_nivel: str | None = None
    eliminou_disciplinas: str | None = None
    optou_ensino_religioso: bool | None = None
    optou_educacao_fisica: bool | None = None
    aceitou_termos: bool | None = None
    data_aceite: date | None = None
    ra: str | None = None
    tipo_escola: str | None = None
    nome_escola: str | None = None

    _normalize_numbers = field_validator("ultima_serie_concluida", "ra", mode="before")(
        _digits_or_text
    )

    @field_validator("progressao_parcial_disciplinas", mode="before")
    @classmethod
    def _wrap_plain_disciplines(cls, value: object) -> object:
        # Older submissions store the list as bare strings.
        if isinstance(value, list):
            return [{"disciplina": item} if isinstance(item, str) else item for item in value]
        return value
