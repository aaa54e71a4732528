from .filial_models import Filial, Ambiente
from .filial_fiscal_models import FilialFiscalConfig, RegimeTributario
from .filial_documento_models import FilialDocumentoConfig, ModeloDocumento

# Importa os modelos para que possam ser acessados diretamente a partir do pacote filial.models
__all__ = [
    "Filial",
    "Ambiente",
    "FilialFiscalConfig",
    "RegimeTributario",
    "FilialDocumentoConfig",
    "ModeloDocumento",
]
