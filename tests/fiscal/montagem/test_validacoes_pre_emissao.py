# tests/fiscal/montagem/test_validacoes_pre_emissao.py
from dataclasses import replace
from decimal import Decimal

import pytest

from conftest import build_emitente, build_item, build_venda
from fiscal.dto import SerieConfig
from fiscal.exceptions import ConfigurationIncomplete, VendaInvalida
from fiscal.municipios import TabelaMunicipiosIBGE
from fiscal.services.montagem_service import validar_emitente, validar_venda


def test_emitente_completo_passa():
    validar_emitente(build_emitente(), "65", municipios=TabelaMunicipiosIBGE())
    validar_emitente(build_emitente(), "55")


def test_lista_todos_os_campos_faltantes():
    emitente = build_emitente(cnpj="", inscricao_estadual="", bairro="", cep="123")

    with pytest.raises(ConfigurationIncomplete) as exc_info:
        validar_emitente(emitente, "65")

    campos = exc_info.value.detalhes["campos"]
    assert campos == ["cnpj", "inscricao_estadual", "bairro", "cep"]
    assert exc_info.value.code == "FISCAL_1001"
    assert exc_info.value.retryable is False


def test_nfce_exige_csc():
    emitente = build_emitente(documentos=(SerieConfig(modelo="65", serie=1),))

    with pytest.raises(ConfigurationIncomplete) as exc_info:
        validar_emitente(emitente, "65")

    assert exc_info.value.detalhes["campos"] == ["csc_id", "csc_token"]


def test_nfe_nao_exige_csc_mas_exige_serie():
    emitente = build_emitente(documentos=(SerieConfig(modelo="65", serie=1, csc_id="1", csc_token="x"),))

    with pytest.raises(ConfigurationIncomplete) as exc_info:
        validar_emitente(emitente, "55")

    assert exc_info.value.detalhes["campos"] == ["serie"]


def test_uf_sem_configuracao():
    with pytest.raises(ConfigurationIncomplete) as exc_info:
        validar_emitente(build_emitente(uf="AC"), "65")
    assert "uf" in exc_info.value.detalhes["campos"]


def test_municipio_verificado_quando_lookup_informado():
    emitente = build_emitente(codigo_municipio="", municipio="Lugar Nenhum")

    with pytest.raises(ConfigurationIncomplete) as exc_info:
        validar_emitente(emitente, "65", municipios=TabelaMunicipiosIBGE())

    assert exc_info.value.detalhes["campos"] == ["codigo_municipio"]


def test_venda_sem_itens():
    venda = replace(build_venda(), itens=())
    with pytest.raises(VendaInvalida):
        validar_venda(venda)


@pytest.mark.parametrize(
    "item",
    [
        build_item("10.00", "0"),
        build_item("-1.00"),
        replace(build_item("10.00"), total=Decimal("12.00")),
        build_item("10.00", descricao="  "),
    ],
)
def test_itens_invalidos(item):
    with pytest.raises(VendaInvalida):
        validar_venda(build_venda(itens=[item]))


def test_total_da_linha_abaixo_de_quantidade_vezes_preco_e_desconto_do_item():
    item = replace(build_item("10.00", "2"), total=Decimal("18.00"))
    validar_venda(build_venda(itens=[item]))


def test_desconto_maior_que_produtos():
    venda = build_venda(itens=[build_item("10.00")], desconto=Decimal("10.01"))
    with pytest.raises(VendaInvalida):
        validar_venda(venda)


def test_documento_destinatario_malformado():
    with pytest.raises(VendaInvalida):
        validar_venda(build_venda(), "1234")
