# tests/fiscal/montagem/test_montagem_documento.py
import random
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from lxml import etree

from conftest import build_emitente, build_item, build_venda
from fiscal.chave_acesso import gerar_chave_acesso
from fiscal.exceptions import ConfigurationIncomplete, VendaInvalida
from fiscal.municipios import TabelaMunicipiosIBGE
from fiscal.services.montagem_service import (
    NFE_NAMESPACE,
    anexar_info_suplementar,
    montar_documento,
)
from fiscal.tributos import CalculadoraTributosPorAliquota

NS = {"n": NFE_NAMESPACE}
EMITIDO_EM = datetime(2026, 3, 10, 10, 0, 0, tzinfo=ZoneInfo("America/Sao_Paulo"))


def _chave(modelo="65", numero=1):
    return gerar_chave_acesso(
        uf="SP",
        ano_mes="2603",
        cnpj="11222333000181",
        modelo=modelo,
        serie=1,
        numero=numero,
        rng=random.Random(3),
    )


def _montar(venda, emitente=None, *, modelo="65", numero=1, destinatario=None, municipios=None):
    emitente = emitente or build_emitente()
    tributos = CalculadoraTributosPorAliquota().calcular(venda)
    return montar_documento(
        venda,
        emitente,
        tributos,
        numero,
        _chave(modelo=modelo, numero=numero),
        destinatario,
        emitido_em=EMITIDO_EM,
        municipios=municipios or TabelaMunicipiosIBGE(),
    )


def _xml(doc):
    return etree.fromstring(doc.xml)


def test_cenario_homologacao_venda_simples_100_reais():
    doc = _montar(build_venda(itens=[build_item("100.00")]))
    raiz = _xml(doc)

    assert raiz.findtext(".//n:ICMSTot/n:vProd", namespaces=NS) == "100.00"
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "100.00"
    assert raiz.findtext(".//n:ide/n:tpAmb", namespaces=NS) == "2"
    assert doc.totais.valor_total == Decimal("100.00")


def test_desconto_150_menos_50():
    venda = build_venda(
        itens=[build_item("100.00", produto_id="P1"), build_item("50.00", produto_id="P2")],
        desconto=Decimal("50.00"),
    )
    raiz = _xml(_montar(venda))

    assert raiz.findtext(".//n:ICMSTot/n:vProd", namespaces=NS) == "150.00"
    assert raiz.findtext(".//n:ICMSTot/n:vDesc", namespaces=NS) == "50.00"
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "100.00"

    descontos_itens = [Decimal(v) for v in raiz.xpath("//n:det/n:prod/n:vDesc/text()", namespaces=NS)]
    assert descontos_itens == [Decimal("33.33"), Decimal("16.67")]
    assert sum(descontos_itens) == Decimal("50.00")


def test_total_armazenado_na_venda_e_ignorado():
    venda = build_venda(itens=[build_item("10.00", "3")])
    venda = replace(venda, total=Decimal("999.99"))

    doc = _montar(venda)
    assert doc.totais.valor_total == Decimal("30.00")


def test_acrescimo_entra_em_voutro():
    venda = build_venda(itens=[build_item("20.00")], acrescimo=Decimal("2.50"))
    raiz = _xml(_montar(venda))

    assert raiz.findtext(".//n:ICMSTot/n:vOutro", namespaces=NS) == "2.50"
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "22.50"


def _soma(raiz, caminho):
    return sum((Decimal(v) for v in raiz.xpath(caminho, namespaces=NS)), Decimal("0.00"))


@pytest.mark.parametrize(
    "precos, desconto, acrescimo",
    [
        (["1.00", "1.00", "1.00", "0.01"], Decimal("0.08"), Decimal("0")),
        (["1.00", "1.00", "1.00", "0.01"], Decimal("0"), Decimal("0.08")),
        (["0.10", "0.10", "0.10"], Decimal("0.10"), Decimal("0.05")),
        (["33.33", "33.33", "33.34", "0.01"], Decimal("10.01"), Decimal("0.07")),
    ],
)
def test_rateio_irregular_fecha_com_icmstot(precos, desconto, acrescimo):
    itens = [build_item(preco, produto_id=f"P{i}") for i, preco in enumerate(precos, start=1)]
    raiz = _xml(_montar(build_venda(itens=itens, desconto=desconto, acrescimo=acrescimo)))

    descontos = [Decimal(v) for v in raiz.xpath("//n:det/n:prod/n:vDesc/text()", namespaces=NS)]
    acrescimos = [Decimal(v) for v in raiz.xpath("//n:det/n:prod/n:vOutro/text()", namespaces=NS)]
    assert all(v > 0 for v in descontos + acrescimos)

    assert _soma(raiz, "//n:det/n:prod/n:vDesc/text()") == Decimal(raiz.findtext(".//n:ICMSTot/n:vDesc", namespaces=NS))
    assert _soma(raiz, "//n:det/n:prod/n:vOutro/text()") == Decimal(raiz.findtext(".//n:ICMSTot/n:vOutro", namespaces=NS))
    assert Decimal(raiz.findtext(".//n:ICMSTot/n:vDesc", namespaces=NS)) == desconto
    assert Decimal(raiz.findtext(".//n:ICMSTot/n:vOutro", namespaces=NS)) == acrescimo


def test_desconto_embutido_na_linha():
    item = replace(build_item("10.00", "2"), total=Decimal("18.00"))
    raiz = _xml(_montar(build_venda(itens=[item, build_item("5.00", produto_id="P2")])))

    vprods = raiz.xpath("//n:det/n:prod/n:vProd/text()", namespaces=NS)
    assert vprods == ["20.00", "5.00"]
    assert raiz.xpath("//n:det/n:prod/n:vDesc/text()", namespaces=NS) == ["2.00"]
    assert raiz.findtext(".//n:ICMSTot/n:vProd", namespaces=NS) == "25.00"
    assert raiz.findtext(".//n:ICMSTot/n:vDesc", namespaces=NS) == "2.00"
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "23.00"


def test_desconto_da_linha_somado_ao_rateio_da_venda():
    item = replace(build_item("10.00", "2"), total=Decimal("18.00"))
    venda = build_venda(itens=[item, build_item("18.00", produto_id="P2")], desconto=Decimal("1.00"))
    raiz = _xml(_montar(venda))

    assert raiz.xpath("//n:det/n:prod/n:vDesc/text()", namespaces=NS) == ["2.50", "0.50"]
    assert raiz.findtext(".//n:ICMSTot/n:vDesc", namespaces=NS) == "3.00"
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "35.00"

def test_montagem_deterministica_byte_a_byte():
    venda = build_venda(itens=[build_item("12.345", "2.5"), build_item("7.10")])

    primeira = _montar(venda)
    segunda = _montar(venda)

    assert primeira.xml == segunda.xml
    assert primeira.totais == segunda.totais


def test_casas_decimais():
    venda = build_venda(itens=[build_item("3.3333", "1.5")])
    raiz = _xml(_montar(venda))
    prod = raiz.find(".//n:det/n:prod", namespaces=NS)

    assert prod.findtext("n:qCom", namespaces=NS) == "1.5000"
    assert prod.findtext("n:vUnCom", namespaces=NS) == "3.3333"
    assert prod.findtext("n:vProd", namespaces=NS) == "5.00"


def test_simples_nacional_csosn_102_e_pis_cofins_zerados():
    raiz = _xml(_montar(build_venda()))

    assert raiz.findtext(".//n:emit/n:CRT", namespaces=NS) == "1"
    assert raiz.findtext(".//n:ICMSSN102/n:CSOSN", namespaces=NS) == "102"
    assert raiz.findtext(".//n:PISOutr/n:CST", namespaces=NS) == "99"
    assert raiz.findtext(".//n:PISOutr/n:pPIS", namespaces=NS) == "0.00"
    assert raiz.findtext(".//n:COFINSOutr/n:vCOFINS", namespaces=NS) == "0.00"
    assert raiz.findtext(".//n:ICMSTot/n:vICMS", namespaces=NS) == "0.00"


def test_regime_normal_usa_resumo_de_tributos():
    emitente = build_emitente(regime_tributario="lucro_presumido")
    item = build_item(
        "100.00",
        aliquota_icms=Decimal("18"),
        aliquota_pis=Decimal("1.65"),
        aliquota_cofins=Decimal("7.6"),
    )
    raiz = _xml(_montar(build_venda(itens=[item]), emitente))

    assert raiz.findtext(".//n:emit/n:CRT", namespaces=NS) == "3"
    assert raiz.findtext(".//n:ICMS00/n:pICMS", namespaces=NS) == "18.00"
    assert raiz.findtext(".//n:ICMS00/n:vICMS", namespaces=NS) == "18.00"
    assert raiz.findtext(".//n:PISAliq/n:vPIS", namespaces=NS) == "1.65"
    assert raiz.findtext(".//n:COFINSAliq/n:vCOFINS", namespaces=NS) == "7.60"
    assert raiz.findtext(".//n:ICMSTot/n:vBC", namespaces=NS) == "100.00"
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "100.00"


def test_nfe_regime_normal_soma_ipi_ao_total():
    emitente = build_emitente(regime_tributario="lucro_real")
    item = build_item("100.00", aliquota_ipi=Decimal("10"))
    doc = _montar(build_venda(itens=[item]), emitente, modelo="55")
    raiz = _xml(doc)

    assert raiz.findtext(".//n:ide/n:mod", namespaces=NS) == "55"
    assert raiz.findtext(".//n:IPITrib/n:vIPI", namespaces=NS) == "10.00"
    assert raiz.findtext(".//n:ICMSTot/n:vIPI", namespaces=NS) == "10.00"
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "110.00"


def test_nfce_nao_destaca_ipi():
    emitente = build_emitente(regime_tributario="lucro_real")
    item = build_item("100.00", aliquota_ipi=Decimal("10"))
    raiz = _xml(_montar(build_venda(itens=[item]), emitente))

    assert raiz.find(".//n:IPI", namespaces=NS) is None
    assert raiz.findtext(".//n:ICMSTot/n:vNF", namespaces=NS) == "100.00"


def test_destinatario_omitido_sem_documento():
    raiz = _xml(_montar(build_venda()))
    assert raiz.find(".//n:dest", namespaces=NS) is None


@pytest.mark.parametrize("documento, tag", [("123.456.789-09", "CPF"), ("11222333000181", "CNPJ")])
def test_destinatario_cpf_ou_cnpj(documento, tag):
    raiz = _xml(_montar(build_venda(), destinatario=documento))
    dest = raiz.find(".//n:dest", namespaces=NS)

    assert dest is not None
    assert dest.findtext(f"n:{tag}", namespaces=NS) == "".join(c for c in documento if c.isdigit())


def test_ide_e_emitente():
    raiz = _xml(_montar(build_venda(), numero=42))
    ide = raiz.find(".//n:ide", namespaces=NS)
    infnfe = raiz.find("n:infNFe", namespaces=NS)
    chave = infnfe.get("Id")[3:]

    assert infnfe.get("versao") == "4.00"
    assert ide.findtext("n:cUF", namespaces=NS) == "35"
    assert ide.findtext("n:nNF", namespaces=NS) == "42"
    assert ide.findtext("n:cNF", namespaces=NS) == chave[35:43]
    assert ide.findtext("n:cDV", namespaces=NS) == chave[43]
    assert ide.findtext("n:dhEmi", namespaces=NS) == "2026-03-10T10:00:00-03:00"
    assert ide.findtext("n:cMunFG", namespaces=NS) == "3550308"
    assert raiz.findtext(".//n:emit/n:CNPJ", namespaces=NS) == "11222333000181"
    assert raiz.findtext(".//n:enderEmit/n:CEP", namespaces=NS) == "01310100"


def test_item_sem_cfop_usa_padrao_da_uf():
    raiz = _xml(_montar(build_venda()))
    assert raiz.findtext(".//n:prod/n:CFOP", namespaces=NS) == "5102"


def test_codigo_municipio_resolvido_pela_tabela():
    emitente = build_emitente(codigo_municipio="", municipio="Sao Paulo")
    raiz = _xml(_montar(build_venda(), emitente))
    assert raiz.findtext(".//n:enderEmit/n:cMun", namespaces=NS) == "3550308"


def test_municipio_nao_resolvido():
    emitente = build_emitente(codigo_municipio="", municipio="Cidade Que Nao Existe")
    with pytest.raises(ConfigurationIncomplete):
        _montar(build_venda(), emitente)


def test_numero_divergente_da_chave():
    venda = build_venda()
    emitente = build_emitente()
    tributos = CalculadoraTributosPorAliquota().calcular(venda)

    with pytest.raises(ValueError):
        montar_documento(venda, emitente, tributos, 2, _chave(numero=1), emitido_em=EMITIDO_EM)


def test_resumo_de_tributos_incompativel():
    venda = build_venda(itens=[build_item("10.00"), build_item("5.00")])
    tributos = CalculadoraTributosPorAliquota().calcular(build_venda())

    with pytest.raises(VendaInvalida):
        montar_documento(
            venda,
            build_emitente(),
            tributos,
            1,
            _chave(),
            emitido_em=EMITIDO_EM,
            municipios=TabelaMunicipiosIBGE(),
        )


def test_info_suplementar_apos_infnfe():
    doc = _montar(build_venda())
    xml = anexar_info_suplementar(doc.xml, "https://qr?p=abc", "www.consulta")
    raiz = etree.fromstring(xml)

    filhos = [etree.QName(el).localname for el in raiz]
    assert filhos == ["infNFe", "infNFeSupl"]
    assert raiz.findtext(".//n:infNFeSupl/n:qrCode", namespaces=NS) == "https://qr?p=abc"

    with pytest.raises(ValueError):
        anexar_info_suplementar(xml, "x", "y")
