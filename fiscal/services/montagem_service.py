# fiscal/services/montagem_service.py
"""
Montagem do documento fiscal no layout NF-e/NFC-e 4.00.

Tudo aqui é puro: mesmas entradas → mesmos bytes. Nada lê banco, relógio
ou rede; o instante de emissão e o lookup de municípios são parâmetros.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from lxml import etree

from fiscal.chave_acesso import decompor_chave_acesso
from fiscal.dto import (
    DocumentoMontado,
    EmitenteConfig,
    ResumoTributos,
    TotaisDocumento,
    TributosItem,
    VendaItemSnapshot,
    VendaSnapshot,
)
from fiscal.exceptions import ConfigurationIncomplete, VendaInvalida
from fiscal.formatacao import ZERO, fmt2, fmt4, q2, ratear_valor, somente_digitos
from fiscal.municipios import MunicipioLookup, resolver_codigo_municipio
from fiscal.uf import CODIGO_UF, get_uf_config, tp_amb, uf_atendida

NFE_NAMESPACE = "http://www.portalfiscal.inf.br/nfe"
VERSAO_LAYOUT = "4.00"
VERSAO_PROCESSO = "getstart-fiscal 1.0"

MODELO_NFE = "55"
MODELO_NFCE = "65"

# Tolerância entre total da linha e quantidade x preço unitário
_TOLERANCIA_LINHA = Decimal("0.01")


# ---------------------------------------------------------------------------
# Validações de pré-emissão (antes de qualquer número ser consumido)
# ---------------------------------------------------------------------------


def validar_emitente(
    emitente: EmitenteConfig,
    modelo: str,
    *,
    municipios: Optional[MunicipioLookup] = None,
) -> None:
    """
    Confere o cadastro do emitente para o modelo pedido.
    Levanta ConfigurationIncomplete listando todos os campos faltantes.
    """
    faltantes: List[str] = []

    if len(somente_digitos(emitente.cnpj)) != 14:
        faltantes.append("cnpj")
    if not (emitente.razao_social or "").strip():
        faltantes.append("razao_social")
    if not (emitente.inscricao_estadual or "").strip():
        faltantes.append("inscricao_estadual")
    if not (emitente.regime_tributario or "").strip():
        faltantes.append("regime_tributario")

    for campo in ("logradouro", "numero", "bairro", "municipio"):
        if not (getattr(emitente, campo) or "").strip():
            faltantes.append(campo)
    if len(somente_digitos(emitente.cep)) != 8:
        faltantes.append("cep")

    uf = (emitente.uf or "").strip().upper()
    if uf not in CODIGO_UF or not uf_atendida(uf):
        faltantes.append("uf")

    try:
        tp_amb(emitente.ambiente)
    except ValueError:
        faltantes.append("ambiente")

    cfg = emitente.config_documento(modelo)
    if cfg is None or cfg.serie is None or not 0 <= int(cfg.serie) <= 999:
        faltantes.append("serie")
    if modelo == MODELO_NFCE:
        if cfg is None or not str(cfg.csc_id or "").strip().isdigit():
            faltantes.append("csc_id")
        if cfg is None or not (cfg.csc_token or "").strip():
            faltantes.append("csc_token")

    if not faltantes and municipios is not None:
        resolver_codigo_municipio(emitente, municipios)

    if faltantes:
        raise ConfigurationIncomplete(
            f"Configuração do emitente incompleta: {', '.join(faltantes)}.",
            detalhes={"campos": faltantes},
        )


def validar_venda(venda: VendaSnapshot, cpf_cnpj_destinatario: Optional[str] = None) -> None:
    problemas: List[str] = []

    if not venda.itens:
        problemas.append("venda sem itens")

    for indice, item in enumerate(venda.itens, start=1):
        if not (item.descricao or "").strip():
            problemas.append(f"item {indice}: descrição vazia")
        if item.quantidade <= 0:
            problemas.append(f"item {indice}: quantidade deve ser positiva")
        if item.preco_unitario < 0 or item.total < 0:
            problemas.append(f"item {indice}: valores negativos")
        elif q2(item.total) - q2(item.quantidade * item.preco_unitario) > _TOLERANCIA_LINHA:
            problemas.append(f"item {indice}: total maior que quantidade x preço")

    if venda.desconto < 0 or venda.acrescimo < 0:
        problemas.append("desconto/acréscimo negativo")

    valor_produtos = sum((q2(i.total) for i in venda.itens), ZERO)
    if q2(venda.desconto) > valor_produtos:
        problemas.append("desconto maior que o total dos produtos")

    if cpf_cnpj_destinatario is not None and cpf_cnpj_destinatario != "":
        if len(somente_digitos(cpf_cnpj_destinatario)) not in (11, 14):
            problemas.append("CPF/CNPJ do destinatário inválido")

    if problemas:
        raise VendaInvalida(
            f"Venda {venda.id} inválida para emissão: {'; '.join(problemas)}.",
            detalhes={"problemas": problemas},
        )


# ---------------------------------------------------------------------------
# Totais
# ---------------------------------------------------------------------------


def valor_bruto_item(item: VendaItemSnapshot) -> Decimal:
    """vProd da linha: quantidade x preço (ou o total, quando arredonda acima)."""
    return max(q2(item.quantidade * item.preco_unitario), q2(item.total))


def desconto_item(item: VendaItemSnapshot) -> Decimal:
    """Desconto já embutido no total da linha."""
    return valor_bruto_item(item) - q2(item.total)


def calcular_totais(
    venda: VendaSnapshot,
    emitente: EmitenteConfig,
    tributos: ResumoTributos,
    modelo: str,
) -> TotaisDocumento:
    valor_produtos = sum((valor_bruto_item(item) for item in venda.itens), ZERO)
    valor_desconto = q2(venda.desconto) + sum((desconto_item(item) for item in venda.itens), ZERO)
    valor_outros = q2(venda.acrescimo)

    if emitente.simples_nacional:
        valor_icms = valor_pis = valor_cofins = ZERO
    else:
        valor_icms = sum((q2(t.valor_icms) for t in tributos.itens), ZERO)
        valor_pis = sum((q2(t.valor_pis) for t in tributos.itens), ZERO)
        valor_cofins = sum((q2(t.valor_cofins) for t in tributos.itens), ZERO)

    valor_ipi = sum((q2(t.valor_ipi) for t in tributos.itens), ZERO) if _destaca_ipi(emitente, modelo) else ZERO

    return TotaisDocumento(
        valor_produtos=valor_produtos,
        valor_desconto=valor_desconto,
        valor_outros=valor_outros,
        valor_icms=valor_icms,
        valor_pis=valor_pis,
        valor_cofins=valor_cofins,
        valor_ipi=valor_ipi,
        valor_total=valor_produtos - valor_desconto + valor_outros + valor_ipi,
    )


def _destaca_ipi(emitente: EmitenteConfig, modelo: str) -> bool:
    # NFC-e não destaca IPI; no Simples o IPI não é destacado por item
    return modelo == MODELO_NFE and not emitente.simples_nacional


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


def _tag(nome: str) -> str:
    return f"{{{NFE_NAMESPACE}}}{nome}"


def _sub(pai, nome: str, texto: Optional[str] = None):
    el = etree.SubElement(pai, _tag(nome))
    if texto is not None:
        el.text = str(texto)
    return el


def _formatar_dh(instante: datetime) -> str:
    if instante.tzinfo is None:
        raise ValueError("Data/hora de emissão deve ter timezone.")
    return instante.replace(microsecond=0).isoformat()


def _montar_ide(infnfe, emitente, chave, codigo_municipio, emitido_em, natureza_operacao):
    partes = decompor_chave_acesso(chave)
    ide = _sub(infnfe, "ide")
    _sub(ide, "cUF", partes.codigo_uf)
    _sub(ide, "cNF", partes.codigo_numerico)
    _sub(ide, "natOp", natureza_operacao)
    _sub(ide, "mod", partes.modelo)
    _sub(ide, "serie", str(partes.serie))
    _sub(ide, "nNF", str(partes.numero))
    _sub(ide, "dhEmi", _formatar_dh(emitido_em))
    _sub(ide, "tpNF", "1")
    _sub(ide, "idDest", "1")
    _sub(ide, "cMunFG", codigo_municipio)
    # 4 = DANFE NFC-e; 1 = DANFE retrato
    _sub(ide, "tpImp", "4" if partes.modelo == MODELO_NFCE else "1")
    _sub(ide, "tpEmis", partes.tp_emis)
    _sub(ide, "cDV", partes.digito_verificador)
    _sub(ide, "tpAmb", tp_amb(emitente.ambiente))
    _sub(ide, "finNFe", "1")
    _sub(ide, "indFinal", "1")
    _sub(ide, "indPres", "1")
    _sub(ide, "procEmi", "0")
    _sub(ide, "verProc", VERSAO_PROCESSO)


def _montar_emit(infnfe, emitente: EmitenteConfig, codigo_municipio: str):
    emit = _sub(infnfe, "emit")
    _sub(emit, "CNPJ", somente_digitos(emitente.cnpj))
    _sub(emit, "xNome", emitente.razao_social.strip())
    if (emitente.nome_fantasia or "").strip():
        _sub(emit, "xFant", emitente.nome_fantasia.strip())

    ender = _sub(emit, "enderEmit")
    _sub(ender, "xLgr", emitente.logradouro.strip())
    _sub(ender, "nro", emitente.numero.strip())
    if (emitente.complemento or "").strip():
        _sub(ender, "xCpl", emitente.complemento.strip())
    _sub(ender, "xBairro", emitente.bairro.strip())
    _sub(ender, "cMun", codigo_municipio)
    _sub(ender, "xMun", emitente.municipio.strip())
    _sub(ender, "UF", emitente.uf.upper())
    _sub(ender, "CEP", somente_digitos(emitente.cep))
    _sub(ender, "cPais", "1058")
    _sub(ender, "xPais", "BRASIL")
    telefone = somente_digitos(emitente.telefone)
    if telefone:
        _sub(ender, "fone", telefone)

    _sub(emit, "IE", somente_digitos(emitente.inscricao_estadual) or emitente.inscricao_estadual.strip())
    _sub(emit, "CRT", emitente.crt)


def _montar_dest(infnfe, documento: str, nome: Optional[str]):
    dest = _sub(infnfe, "dest")
    _sub(dest, "CPF" if len(documento) == 11 else "CNPJ", documento)
    if (nome or "").strip():
        _sub(dest, "xNome", nome.strip())
    # 9 = não contribuinte
    _sub(dest, "indIEDest", "9")


def _montar_prod(det, item: VendaItemSnapshot, cfop_padrao: str, desconto: Decimal, acrescimo: Decimal):
    prod = _sub(det, "prod")
    gtin = somente_digitos(item.gtin) or "SEM GTIN"
    _sub(prod, "cProd", str(item.produto_id)[:60])
    _sub(prod, "cEAN", gtin)
    _sub(prod, "xProd", item.descricao.strip()[:120])
    _sub(prod, "NCM", somente_digitos(item.ncm) or "00000000")
    _sub(prod, "CFOP", somente_digitos(item.cfop) or cfop_padrao)
    _sub(prod, "uCom", item.unidade or "UN")
    _sub(prod, "qCom", fmt4(item.quantidade))
    _sub(prod, "vUnCom", fmt4(item.preco_unitario))
    _sub(prod, "vProd", fmt2(valor_bruto_item(item)))
    _sub(prod, "cEANTrib", gtin)
    _sub(prod, "uTrib", item.unidade or "UN")
    _sub(prod, "qTrib", fmt4(item.quantidade))
    _sub(prod, "vUnTrib", fmt4(item.preco_unitario))
    if desconto > 0:
        _sub(prod, "vDesc", fmt2(desconto))
    if acrescimo > 0:
        _sub(prod, "vOutro", fmt2(acrescimo))
    _sub(prod, "indTot", "1")


def _montar_imposto_simples(det, item: VendaItemSnapshot):
    imposto = _sub(det, "imposto")

    icms = _sub(_sub(imposto, "ICMS"), "ICMSSN102")
    _sub(icms, "orig", item.origem or "0")
    _sub(icms, "CSOSN", "102")

    pis = _sub(_sub(imposto, "PIS"), "PISOutr")
    _sub(pis, "CST", "99")
    _sub(pis, "vBC", fmt2(ZERO))
    _sub(pis, "pPIS", fmt2(ZERO))
    _sub(pis, "vPIS", fmt2(ZERO))

    cofins = _sub(_sub(imposto, "COFINS"), "COFINSOutr")
    _sub(cofins, "CST", "99")
    _sub(cofins, "vBC", fmt2(ZERO))
    _sub(cofins, "pCOFINS", fmt2(ZERO))
    _sub(cofins, "vCOFINS", fmt2(ZERO))


def _montar_imposto_normal(det, item: VendaItemSnapshot, trib: TributosItem, destaca_ipi: bool):
    imposto = _sub(det, "imposto")

    icms = _sub(_sub(imposto, "ICMS"), "ICMS00")
    _sub(icms, "orig", item.origem or "0")
    _sub(icms, "CST", "00")
    # 3 = valor da operação
    _sub(icms, "modBC", "3")
    _sub(icms, "vBC", fmt2(trib.base_icms))
    _sub(icms, "pICMS", fmt2(trib.aliquota_icms))
    _sub(icms, "vICMS", fmt2(trib.valor_icms))

    if destaca_ipi and trib.valor_ipi > 0:
        ipi = _sub(imposto, "IPI")
        _sub(ipi, "cEnq", "999")
        ipi_trib = _sub(ipi, "IPITrib")
        _sub(ipi_trib, "CST", "50")
        _sub(ipi_trib, "vBC", fmt2(trib.base_ipi))
        _sub(ipi_trib, "pIPI", fmt2(trib.aliquota_ipi))
        _sub(ipi_trib, "vIPI", fmt2(trib.valor_ipi))

    pis = _sub(_sub(imposto, "PIS"), "PISAliq")
    _sub(pis, "CST", "01")
    _sub(pis, "vBC", fmt2(trib.base_pis))
    _sub(pis, "pPIS", fmt2(trib.aliquota_pis))
    _sub(pis, "vPIS", fmt2(trib.valor_pis))

    cofins = _sub(_sub(imposto, "COFINS"), "COFINSAliq")
    _sub(cofins, "CST", "01")
    _sub(cofins, "vBC", fmt2(trib.base_cofins))
    _sub(cofins, "pCOFINS", fmt2(trib.aliquota_cofins))
    _sub(cofins, "vCOFINS", fmt2(trib.valor_cofins))


def _montar_total(infnfe, totais: TotaisDocumento, valor_bc: Decimal):
    icms_tot = _sub(_sub(infnfe, "total"), "ICMSTot")
    campos = [
        ("vBC", valor_bc),
        ("vICMS", totais.valor_icms),
        ("vICMSDeson", ZERO),
        ("vFCP", ZERO),
        ("vBCST", ZERO),
        ("vST", ZERO),
        ("vFCPST", ZERO),
        ("vFCPSTRet", ZERO),
        ("vProd", totais.valor_produtos),
        ("vFrete", ZERO),
        ("vSeg", ZERO),
        ("vDesc", totais.valor_desconto),
        ("vII", ZERO),
        ("vIPI", totais.valor_ipi),
        ("vIPIDevol", ZERO),
        ("vPIS", totais.valor_pis),
        ("vCOFINS", totais.valor_cofins),
        ("vOutro", totais.valor_outros),
        ("vNF", totais.valor_total),
    ]
    for nome, valor in campos:
        _sub(icms_tot, nome, fmt2(valor))


def _itens_tributos(venda: VendaSnapshot, tributos: ResumoTributos) -> Sequence[TributosItem]:
    if len(tributos.itens) != len(venda.itens):
        raise VendaInvalida(
            "Resumo de tributos não corresponde aos itens da venda.",
            detalhes={"itens_venda": len(venda.itens), "itens_tributos": len(tributos.itens)},
        )
    return tributos.itens


def montar_documento(
    venda: VendaSnapshot,
    emitente: EmitenteConfig,
    tributos: ResumoTributos,
    numero: int,
    chave_acesso: str,
    cpf_cnpj_destinatario: Optional[str] = None,
    *,
    emitido_em: datetime,
    municipios: Optional[MunicipioLookup] = None,
) -> DocumentoMontado:
    """
    Monta o XML (sem assinatura) de um documento fiscal.

    O modelo e a série vêm da própria chave de acesso; `numero` precisa
    coincidir com o nNF da chave. Não altera nenhum estado e devolve bytes
    idênticos para entradas idênticas.
    """
    partes = decompor_chave_acesso(chave_acesso)
    modelo = partes.modelo

    if partes.numero != int(numero):
        raise ValueError("Número informado não confere com o nNF da chave de acesso.")

    validar_emitente(emitente, modelo)
    destinatario = somente_digitos(cpf_cnpj_destinatario)
    validar_venda(venda, destinatario)

    codigo_municipio = resolver_codigo_municipio(emitente, municipios)
    uf_config = get_uf_config(emitente.uf)
    itens_tributos = _itens_tributos(venda, tributos)
    cfg = emitente.config_documento(modelo)

    totais = calcular_totais(venda, emitente, tributos, modelo)
    totais_linha = [q2(item.total) for item in venda.itens]
    descontos = ratear_valor(venda.desconto, totais_linha)
    acrescimos = ratear_valor(venda.acrescimo, totais_linha)
    destaca_ipi = _destaca_ipi(emitente, modelo)

    raiz = etree.Element(_tag("NFe"), nsmap={None: NFE_NAMESPACE})
    infnfe = _sub(raiz, "infNFe")
    infnfe.set("Id", f"NFe{chave_acesso}")
    infnfe.set("versao", VERSAO_LAYOUT)

    _montar_ide(infnfe, emitente, chave_acesso, codigo_municipio, emitido_em, cfg.natureza_operacao or "VENDA")
    _montar_emit(infnfe, emitente, codigo_municipio)
    if destinatario:
        _montar_dest(infnfe, destinatario, venda.nome_destinatario)

    for indice, (item, trib) in enumerate(zip(venda.itens, itens_tributos), start=1):
        det = _sub(infnfe, "det")
        det.set("nItem", str(indice))
        _montar_prod(
            det,
            item,
            uf_config.cfop_venda_dentro_uf,
            descontos[indice - 1] + desconto_item(item),
            acrescimos[indice - 1],
        )
        if emitente.simples_nacional:
            _montar_imposto_simples(det, item)
        else:
            _montar_imposto_normal(det, item, trib, destaca_ipi)

    valor_bc = ZERO if emitente.simples_nacional else sum((q2(t.base_icms) for t in itens_tributos), ZERO)
    _montar_total(infnfe, totais, valor_bc)

    transp = _sub(infnfe, "transp")
    # 9 = sem frete
    _sub(transp, "modFrete", "9")

    det_pag = _sub(_sub(infnfe, "pag"), "detPag")
    _sub(det_pag, "tPag", venda.forma_pagamento or "01")
    _sub(det_pag, "vPag", fmt2(totais.valor_total))

    xml = etree.tostring(raiz, xml_declaration=True, encoding="UTF-8")
    return DocumentoMontado(xml=xml, totais=totais)


def anexar_info_suplementar(xml: bytes, qrcode: str, url_chave: str) -> bytes:
    """Acrescenta infNFeSupl (QR-Code e urlChave) ao XML montado da NFC-e."""
    raiz = etree.fromstring(xml)
    if raiz.find(_tag("infNFeSupl")) is not None:
        raise ValueError("Documento já possui infNFeSupl.")

    supl = etree.Element(_tag("infNFeSupl"))
    _sub(supl, "qrCode", qrcode)
    _sub(supl, "urlChave", url_chave)

    # infNFeSupl fica logo após infNFe
    raiz.find(_tag("infNFe")).addnext(supl)
    return etree.tostring(raiz, xml_declaration=True, encoding="UTF-8")
