"""Field remapping from loosely-typed submission payloads onto strict record types.

Intake forms were written against two naming conventions, so most destination columns
can arrive under a snake_case or a camelCase key. Each kind declares its rules
explicitly: destination column first, then the accepted source spellings in priority
order. The first source that is neither null nor blank wins; keys no rule mentions are dropped.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from enrollcheck.domain.errors import MissingRequiredFieldError, PayloadValidationError
from enrollcheck.domain.model.enums import EntityKind
from enrollcheck.domain.model.records import (
    AddressFields,
    PersonalDataFields,
    SchoolingFields,
    StrictRecord,
)

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True, slots=True)
class FieldRule:
    destination: str
    sources: tuple[str, ...]

    def pick(self, payload: Mapping[str, object]) -> object | None:
        for source in self.sources:
            value = payload.get(source)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            return value
        return None


def _rule(destination: str, *alternates: str) -> FieldRule:
    sources = (destination, *alternates)
    return FieldRule(destination=destination, sources=tuple(dict.fromkeys(sources)))


PERSONAL_DATA_RULES: Final[tuple[FieldRule, ...]] = (
    _rule("nome_completo", "nomeCompleto"),
    _rule("tem_nome_social", "temNomeSocial"),
    _rule("nome_social", "nomeSocial"),
    _rule("tem_nome_afetivo", "temNomeAfetivo"),
    _rule("nome_afetivo", "nomeAfetivo"),
    _rule("sexo"),
    _rule("idade"),
    _rule("rg"),
    _rule("rg_digito", "rgDigito"),
    _rule("rg_uf", "rgUf"),
    _rule("rg_data_emissao", "rgDataEmissao"),
    _rule("cpf"),
    _rule("raca_cor", "racaCor"),
    _rule("data_nascimento", "dataNascimento"),
    _rule("nome_mae", "nomeMae"),
    _rule("nome_pai", "nomePai"),
    _rule("nacionalidade"),
    _rule("nascimento_uf", "nascimentoUf"),
    _rule("nascimento_cidade", "nascimentoCidade"),
    _rule("telefone"),
    _rule("email"),
    _rule("possui_internet", "possuiInternet"),
    _rule("possui_device", "possuiDevice"),
    _rule("is_gemeo", "isGemeo"),
    _rule("nome_gemeo", "nomeGemeo"),
    _rule("trabalha"),
    _rule("is_pcd", "isPcd"),
    _rule("profissao"),
    _rule("empresa"),
    _rule("deficiencia"),
)

# The addresses table itself mixes conventions: the city and "differentiated location"
# columns are camelCase in storage.
ADDRESS_RULES: Final[tuple[FieldRule, ...]] = (
    _rule("cep"),
    _rule("logradouro"),
    _rule("numero"),
    _rule("complemento"),
    _rule("bairro"),
    _rule("nomeCidade", "nome_cidade"),
    _rule("ufCidade", "uf_cidade"),
    _rule("zona"),
    _rule("temLocalizacaoDiferenciada", "tem_localizacao_diferenciada"),
    _rule("localizacaoDiferenciada", "localizacao_diferenciada"),
)

SCHOOLING_RULES: Final[tuple[FieldRule, ...]] = (
    _rule("nivel_ensino", "nivelEnsino"),
    _rule("itinerario_formativo", "itinerarioFormativo"),
    _rule("ultima_serie_concluida", "ultimaSerieConcluida"),
    _rule("estudou_no_ceeja", "estudouNoCeeja"),
    _rule("tem_progressao_parcial", "temProgressaoParcial"),
    _rule("progressao_parcial_disciplinas", "progressaoParcialDisciplinas"),
    _rule("eliminou_disciplina", "eliminouDisciplina"),
    _rule("eliminou_disciplina_nivel", "eliminouDisciplinaNivel"),
    _rule("eliminou_disciplinas", "eliminouDisciplinas"),
    _rule("optou_ensino_religioso", "optouEnsinoReligioso"),
    _rule("optou_educacao_fisica", "optouEducacaoFisica"),
    _rule("aceitou_termos", "aceitouTermos"),
    _rule("data_aceite", "dataAceite"),
    _rule("ra"),
    _rule("tipo_escola", "tipoEscola"),
    _rule("nome_escola", "nomeEscola"),
)


@dataclass(frozen=True, slots=True)
class RemapTarget:
    rules: tuple[FieldRule, ...]
    record_type: type[StrictRecord]


REMAP_TARGETS: Final[dict[EntityKind, RemapTarget]] = {
    EntityKind.PERSONAL_DATA: RemapTarget(PERSONAL_DATA_RULES, PersonalDataFields),
    EntityKind.ADDRESSES: RemapTarget(ADDRESS_RULES, AddressFields),
    EntityKind.SCHOOLING_DATA: RemapTarget(SCHOOLING_RULES, SchoolingFields),
}


def apply_rules(rules: Sequence[FieldRule], payload: Mapping[str, object]) -> dict[str, object]:
    """Project ``payload`` through ``rules``; unset destinations are left out."""

    mapped: dict[str, object] = {}
    for rule in rules:
        value = rule.pick(payload)
        if value is not None:
            mapped[rule.destination] = value
    return mapped


def remap(kind: EntityKind, payload: Mapping[str, object]) -> StrictRecord:
    """Build the strict record for ``kind`` out of a raw submission payload.

    Raises ``MissingRequiredFieldError`` if a required column has no usable source value
    and ``PayloadValidationError`` if a provided value cannot be coerced.
    """

    target = REMAP_TARGETS.get(kind)
    if target is None:
        raise PayloadValidationError(f"No remapping rules for {kind}")

    mapped = apply_rules(target.rules, payload)
    try:
        return target.record_type.model_validate(mapped)
    except ValidationError as exc:
        missing = [err for err in exc.errors() if err["type"] == "missing"]
        if missing:
            field_name = str(missing[0]["loc"][0])
            raise MissingRequiredFieldError(kind, field_name) from exc
        # A required field given as a blank string is normalised to None first.
        none_required = [
            err
            for err in exc.errors()
            if err["type"] == "string_type"
            and err["input"] is None
            and target.record_type.model_fields[str(err["loc"][0])].is_required()
        ]
        if none_required:
            raise MissingRequiredFieldError(kind, str(none_required[0]["loc"][0])) from exc
        raise PayloadValidationError(f"Invalid {kind} payload: {exc}") from exc


def has_content(payload: Mapping[str, object] | None) -> bool:
    """Whether a raw payload carries anything worth writing."""

    if not payload:
        return False
    return any(value is not None and value != "" for value in payload.values())
