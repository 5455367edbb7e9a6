"""
Testes do compilador de regras de segmento.

Cada operador e verificado contra a base fixa de clientes do conftest:
    ana   50   1 visita   ultimo pedido ha 200 dias  tags []
    bruno 150  4 visitas  ha 5 dias                  tags [newsletter]
    carla 500  12 visitas ha 20 dias                 tags [VIP, newsletter]
    diego 1500 30 visitas ha 120 dias                tags [VIP]
"""
from datetime import timedelta

import pytest

from orchestrator.core.exceptions import ValidationError
from orchestrator.services.segments import (
    CustomerRepository,
    SegmentRule,
    compile_rules,
    validate_rules,
)
from orchestrator.services.store import Condition, Op, Predicate


async def _ids(store, rules):
    rows = await CustomerRepository(store).find(compile_rules(rules))
    return sorted(row["first_name"].lower() for row in rows)


class TestCompileRules:
    """Compilacao + avaliacao em memoria."""

    @pytest.mark.asyncio
    async def test_lista_vazia_casa_todos(self, store, popular, clientes):
        await popular("customers", clientes)
        assert await _ids(store, []) == ["ana", "bruno", "carla", "diego"]
        assert compile_rules(None) == Predicate()

    @pytest.mark.asyncio
    async def test_greater_than(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "totalSpend", "operator": "greater_than", "value": 100}]
        assert await _ids(store, rules) == ["bruno", "carla", "diego"]

    @pytest.mark.asyncio
    async def test_less_than(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "totalSpend", "operator": "less_than", "value": 500}]
        assert await _ids(store, rules) == ["ana", "bruno"]

    @pytest.mark.asyncio
    async def test_equals(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "visits", "operator": "equals", "value": 4}]
        assert await _ids(store, rules) == ["bruno"]

    @pytest.mark.asyncio
    async def test_not_equals(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "visits", "operator": "not_equals", "value": 4}]
        assert await _ids(store, rules) == ["ana", "carla", "diego"]

    @pytest.mark.asyncio
    async def test_contains_em_tags(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "tags", "operator": "contains", "value": "VIP"}]
        assert await _ids(store, rules) == ["carla", "diego"]

    @pytest.mark.asyncio
    async def test_not_contains_em_tags(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "tags", "operator": "not_contains", "value": "VIP"}]
        assert await _ids(store, rules) == ["ana", "bruno"]

    @pytest.mark.asyncio
    async def test_in_em_tags_e_sobreposicao(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "tags", "operator": "in", "value": ["newsletter", "inexistente"]}]
        assert await _ids(store, rules) == ["bruno", "carla"]

    @pytest.mark.asyncio
    async def test_not_in_em_tags(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "tags", "operator": "not_in", "value": ["VIP"]}]
        assert await _ids(store, rules) == ["ana", "bruno"]

    @pytest.mark.asyncio
    async def test_in_em_campo_escalar(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "visits", "operator": "in", "value": [1, 30]}]
        assert await _ids(store, rules) == ["ana", "diego"]

    @pytest.mark.asyncio
    async def test_not_in_em_campo_escalar(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "visits", "operator": "not_in", "value": [1, 30]}]
        assert await _ids(store, rules) == ["bruno", "carla"]

    @pytest.mark.asyncio
    async def test_datas_relativas(self, store, popular, clientes, agora):
        await popular("customers", clientes)
        recentes = [{
            "field": "lastOrderAt",
            "operator": "greater_than",
            "value": (agora - timedelta(days=30)).isoformat(),
        }]
        inativos = [{
            "field": "lastOrderAt",
            "operator": "less_than",
            "value": (agora - timedelta(days=90)).isoformat(),
        }]
        assert await _ids(store, recentes) == ["bruno", "carla"]
        assert await _ids(store, inativos) == ["ana", "diego"]

    @pytest.mark.asyncio
    async def test_contains_com_lista_em_campo_escalar_vira_in(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [{"field": "totalSpend", "operator": "contains", "value": [50, 150]}]
        assert await _ids(store, rules) == ["ana", "bruno"]

    @pytest.mark.asyncio
    async def test_regras_combinadas_com_and(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [
            {"field": "totalSpend", "operator": "greater_than", "value": 100},
            {"field": "tags", "operator": "contains", "value": "VIP"},
            {"field": "visits", "operator": "less_than", "value": 20},
        ]
        assert await _ids(store, rules) == ["carla"]

    @pytest.mark.asyncio
    async def test_regras_repetidas_no_mesmo_campo_sao_todas_aplicadas(self, store, popular, clientes):
        await popular("customers", clientes)
        rules = [
            {"field": "totalSpend", "operator": "greater_than", "value": 100},
            {"field": "totalSpend", "operator": "less_than", "value": 1000},
        ]
        assert await _ids(store, rules) == ["bruno", "carla"]

    def test_valor_numerico_em_string_e_normalizado(self):
        predicate = compile_rules([{"field": "totalSpend", "operator": "greater_than", "value": "100"}])
        assert predicate.conditions == (Condition("total_spend", Op.GT, 100),)

    def test_campo_desconhecido_nao_restringe(self):
        unknown = [{"field": "age", "operator": "greater_than", "value": 30}]
        assert compile_rules(unknown) == compile_rules([])

    def test_operador_desconhecido_nao_restringe(self):
        rules = [
            {"field": "visits", "operator": "between", "value": [1, 5]},
            {"field": "visits", "operator": "greater_than", "value": 2},
        ]
        assert compile_rules(rules) == Predicate((Condition("visits", Op.GT, 2),))

    def test_aceita_segment_rule(self):
        predicate = compile_rules([SegmentRule("tags", "contains", "VIP")])
        assert predicate.conditions == (Condition("tags", Op.CONTAINS, "VIP", array=True),)


class TestValidateRules:
    """Validacao estrita para entradas da API."""

    def test_regras_validas_sao_normalizadas(self):
        rules = validate_rules([
            {"field": "totalSpend", "operator": "greater_than", "value": 100},
            {"field": "tags", "operator": "in", "value": ["VIP", "gold"]},
        ])
        assert rules[1] == SegmentRule("tags", "in", ("VIP", "gold"))

    def test_lista_vazia_e_valida(self):
        assert validate_rules([]) == []

    @pytest.mark.parametrize("regra,erro", [
        ({"field": "age", "operator": "equals", "value": 1}, "campo desconhecido"),
        ({"field": "visits", "operator": "between", "value": 1}, "operador desconhecido"),
        ({"field": "visits", "operator": "equals", "value": None}, "valor obrigatorio"),
        ({"field": "visits", "operator": "in", "value": 3}, "lista"),
        ({"field": "tags", "operator": "greater_than", "value": "VIP"}, "ordem"),
        ({"field": "totalSpend", "operator": "greater_than", "value": "muito"}, "numerico"),
        ({"field": "visits", "operator": "equals", "value": True}, "numerico"),
        ({"field": "lastOrderAt", "operator": "less_than", "value": "ontem"}, "ISO"),
    ])
    def test_regras_invalidas(self, regra, erro):
        with pytest.raises(ValidationError) as exc:
            validate_rules([regra])

        errors = exc.value.details["errors"]
        assert errors[0]["index"] == 0
        assert erro in errors[0]["error"]

    def test_reporta_todos_os_erros(self):
        with pytest.raises(ValidationError) as exc:
            validate_rules([
                {"field": "visits", "operator": "greater_than", "value": 2},
                "nao e objeto",
                {"field": "age", "operator": "equals", "value": 3},
            ])

        assert [e["index"] for e in exc.value.details["errors"]] == [1, 2]
