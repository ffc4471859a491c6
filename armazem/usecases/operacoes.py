# armazem/usecases/operacoes.py
"""
Fachada de operações do inventário (contrato público do motor).

Cada operação:
1. valida a entrada;
2. abre uma unidade de trabalho;
3. lê produto/localização, aplica a FSM e as regras de capacidade;
4. grava produto (condicionado à versão lida), localização e exatamente
   uma movimentação no ledger, em um único commit.

Retorno: ``{"success": True, "data": {...}}``; falhas levantam as
exceções de ``armazem.domain.erros`` (e ficam registradas no log de
transações).

Operações:
- criar_produto, mover_produto, remover_produto
- solicitar_retirada, confirmar_retirada, cancelar_retirada
- validar_capacidade_localizacao, buscar_localizacao_otima
- adicionar_estoque, registrar_ajuste_manual
- obter_produto, listar_produtos
"""

from __future__ import annotations

from dataclasses import asdict, replace
from datetime import date
from typing import Any, Callable, Dict, Optional

from armazem.config import DB_PATH, DefaultConfig
from armazem.domain import fsm
from armazem.domain.erros import (
    CapacityExceededError,
    InvalidTransitionError,
    LocationOccupiedError,
    NotFoundError,
    ValidationError,
)
from armazem.domain.models import (
    TIPOS_ARMAZENAMENTO,
    EventoMovimentacao,
    Produto,
    StatusProduto,
    StatusSolicitacao,
    TipoMovimentacao,
)
from armazem.domain.policies import analisar_otimizacao
from armazem.infra.logger import log_system_event, log_transaction
from armazem.infra.uow import UnidadeTrabalho, carregar_parametros, unidade_trabalho
from armazem.usecases import alocacao, retiradas
from armazem.usecases.movimentacoes import registrar

PESO_MAXIMO_UNIDADE_KG = 1000.0


def _executar(operacao: str, dados: Dict[str, Any], db_path: str,
              corpo: Callable[[UnidadeTrabalho], Dict[str, Any]]) -> Dict[str, Any]:
    """Roda ``corpo`` em uma unidade de trabalho, com log de sucesso/falha."""
    log_system_event(f"{operacao}_start", dados)
    try:
        with unidade_trabalho(db_path) as uow:
            data = corpo(uow)
        log_transaction(operacao, dados, result="success")
        return {"success": True, "data": data}
    except Exception as e:
        log_transaction(operacao, dados, error=str(e))
        log_system_event(f"{operacao}_error", {"error": str(e), **dados}, level="error")
        raise


# -------------------------
# Validações de entrada
# -------------------------

def _inteiro_positivo(valor: Any, campo: str) -> int:
    try:
        numero = float(valor)
    except (TypeError, ValueError):
        raise ValidationError(f"{campo} deve ser um número inteiro", **{campo: valor})
    if not numero.is_integer() or numero < 1:
        raise ValidationError(f"{campo} deve ser um inteiro maior ou igual a 1", **{campo: valor})
    return int(numero)


def _data_iso(valor: Any, campo: str) -> Optional[date]:
    if valor in (None, ""):
        return None
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor)[:10])
    except ValueError:
        raise ValidationError(f"{campo} deve estar no formato AAAA-MM-DD", **{campo: valor})


def _exigir_usuario(usuario_id: Optional[str]) -> str:
    if not usuario_id or not str(usuario_id).strip():
        raise ValidationError("Usuário é obrigatório")
    return str(usuario_id).strip()


def _validar_dados_produto(dados: Dict[str, Any]) -> Dict[str, Any]:
    lote = str(dados.get("lote") or "").strip()
    if not lote:
        raise ValidationError("Lote é obrigatório")

    quantidade = _inteiro_positivo(dados.get("quantidade"), "quantidade")

    try:
        ppu = float(dados.get("peso_por_unidade"))
    except (TypeError, ValueError):
        raise ValidationError("Peso por unidade deve ser numérico")
    if ppu <= 0:
        raise ValidationError("Peso por unidade deve ser maior que zero", peso_por_unidade=ppu)
    if ppu > PESO_MAXIMO_UNIDADE_KG:
        raise ValidationError(
            f"Peso por unidade não pode exceder {PESO_MAXIMO_UNIDADE_KG:g} kg", peso_por_unidade=ppu
        )

    tipo_armazenamento = str(dados.get("tipo_armazenamento") or "saco").strip().lower()
    if tipo_armazenamento not in TIPOS_ARMAZENAMENTO:
        raise ValidationError(
            "Tipo de armazenamento deve ser 'saco' ou 'bag'", tipo_armazenamento=tipo_armazenamento
        )

    entrada = _data_iso(dados.get("data_entrada"), "data_entrada") or date.today()
    validade = _data_iso(dados.get("data_validade"), "data_validade")
    if validade is not None and validade <= entrada:
        raise ValidationError(
            "Data de validade deve ser posterior à data de entrada",
            data_entrada=entrada.isoformat(),
            data_validade=validade.isoformat(),
        )

    atributos = dados.get("atributos") or {}
    if not isinstance(atributos, dict):
        raise ValidationError("Atributos devem ser um mapeamento chave/valor")

    return {
        "lote": lote,
        "nome": dados.get("nome"),
        "tipo_semente": dados.get("tipo_semente"),
        "quantidade": quantidade,
        "peso_por_unidade": ppu,
        "peso_total": fsm.calcular_peso_total(quantidade, ppu),
        "tipo_armazenamento": tipo_armazenamento,
        "data_entrada": entrada.isoformat(),
        "data_validade": validade.isoformat() if validade else None,
        "atributos": atributos,
    }


def _exigir_capacidade(validacao: Dict[str, Any], localizacao_id: int) -> None:
    """Converte uma validação reprovada na exceção correspondente."""
    if validacao["valid"]:
        return
    code = validacao["code"]
    if code == "LOCATION_OCCUPIED":
        raise LocationOccupiedError(validacao["reason"], localizacao_id=localizacao_id)
    if code == "INSUFFICIENT_CAPACITY":
        raise CapacityExceededError(
            validacao["reason"],
            deficit=validacao["deficit"],
            localizacao_id=localizacao_id,
            suggestions=validacao.get("suggestions"),
        )
    raise ValidationError(validacao["reason"], localizacao_id=localizacao_id, code=code)


def _exigir_locado(produto: Produto, mensagem: str) -> None:
    if produto.status != StatusProduto.LOCADO:
        raise InvalidTransitionError(mensagem, status_atual=produto.status, produto_id=produto.id)


# -------------------------
# Ciclo de vida do produto
# -------------------------

def criar_produto(dados: Dict[str, Any], usuario_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Aloca um novo produto (explicitamente ou na melhor localização livre).

    Args:
        dados: lote, quantidade, peso_por_unidade e opcionais (localizacao_id,
            camara_id, nome, tipo_semente, tipo_armazenamento, data_entrada,
            data_validade, atributos, motivo).
        usuario_id: Usuário responsável.
        db_path: Caminho do banco.

    Raises:
        ValidationError, NotFoundError, LocationOccupiedError, CapacityExceededError
    """
    usuario_id = _exigir_usuario(usuario_id)
    campos = _validar_dados_produto(dados)
    cfg = carregar_parametros(db_path)

    def corpo(uow: UnidadeTrabalho) -> Dict[str, Any]:
        localizacao_id = dados.get("localizacao_id")
        if localizacao_id in (None, ""):
            otima = alocacao.encontrar_localizacao_otima(
                uow, campos, cfg, camara_id=dados.get("camara_id")
            )
            if not otima["success"]:
                raise NotFoundError(otima["message"], peso=campos["peso_total"])
            localizacao_id = otima["data"]["location"]["id"]

        validacao = alocacao.validar_capacidade(
            uow, int(localizacao_id), campos["peso_total"], cfg, incluir_sugestoes=True
        )
        _exigir_capacidade(validacao, int(localizacao_id))

        localizacao = alocacao.ocupar(uow, int(localizacao_id), campos["peso_total"])
        produto = uow.produtos.inserir(
            Produto(
                **campos,
                localizacao_id=localizacao.id,
                status=StatusProduto.LOCADO,
                criado_por=usuario_id,
                modificado_por=usuario_id,
            )
        )
        mov = registrar(
            uow,
            TipoMovimentacao.ENTRADA,
            produto.id,
            produto.quantidade,
            produto.peso_total,
            usuario_id,
            dados.get("motivo") or "Entrada de produto",
            destino_id=localizacao.id,
            evento=EventoMovimentacao.CRIACAO,
            lote=produto.lote,
        )
        return {
            "produto": asdict(produto),
            "localizacao": asdict(localizacao),
            "movimentacao": asdict(mov),
            "warnings": validacao["warnings"],
        }

    return _executar("criar_produto", {"lote": campos["lote"], "usuario_id": usuario_id}, db_path, corpo)


def mover_produto(
    produto_id: int,
    nova_localizacao_id: int,
    usuario_id: str,
    motivo: Optional[str] = None,
    analisar: bool = False,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Transfere um produto LOCADO para outra localização livre."""
    usuario_id = _exigir_usuario(usuario_id)
    cfg = carregar_parametros(db_path)

    def corpo(uow: UnidadeTrabalho) -> Dict[str, Any]:
        produto = uow.exigir_produto(produto_id)
        _exigir_locado(produto, "Apenas produtos locados podem ser movidos")
        if nova_localizacao_id == produto.localizacao_id:
            raise ValidationError(
                "Produto já está nesta localização", localizacao_id=nova_localizacao_id
            )

        validacao = alocacao.validar_capacidade(
            uow, nova_localizacao_id, produto.peso_total, cfg, incluir_sugestoes=True
        )
        _exigir_capacidade(validacao, nova_localizacao_id)

        # o destino é reivindicado antes de o produto apontar para ele
        nova = alocacao.ocupar(uow, nova_localizacao_id, produto.peso_total)
        antiga = alocacao.liberar(uow, produto.localizacao_id)
        gravado = uow.gravar_produto(
            replace(produto, localizacao_id=nova_localizacao_id, modificado_por=usuario_id),
            produto.versao,
        )
        mov = registrar(
            uow,
            TipoMovimentacao.TRANSFERENCIA,
            produto.id,
            produto.quantidade,
            produto.peso_total,
            usuario_id,
            motivo or "Transferência de localização",
            origem_id=antiga.id,
            destino_id=nova.id,
            evento=EventoMovimentacao.TRANSFERENCIA,
        )
        resultado = {
            "produto": asdict(gravado),
            "origem": asdict(antiga),
            "destino": asdict(nova),
            "movimentacao": asdict(mov),
            "warnings": validacao["warnings"],
        }
        if analisar:
            resultado["analise"] = analisar_otimizacao(asdict(antiga), asdict(nova))
        return resultado

    return _executar(
        "mover_produto",
        {"produto_id": produto_id, "nova_localizacao_id": nova_localizacao_id, "usuario_id": usuario_id},
        db_path,
        corpo,
    )


def remover_produto(
    produto_id: int,
    usuario_id: str,
    motivo: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Retirada total forçada, sem solicitação prévia.

    Uma solicitação pendente, se houver, é fechada como CANCELADA; nenhuma
    solicitação nova é criada.
    """
    usuario_id = _exigir_usuario(usuario_id)

    def corpo(uow: UnidadeTrabalho) -> Dict[str, Any]:
        produto = uow.exigir_produto(produto_id)
        resultado = fsm.remover(produto)
        gravado = uow.gravar_produto(
            replace(resultado.produto, modificado_por=usuario_id), produto.versao
        )
        localizacao = alocacao.liberar(uow, produto.localizacao_id)

        cancelada = None
        solicitacao = uow.solicitacoes.pendente_do_produto(produto.id)
        if solicitacao is not None:
            uow.solicitacoes.resolver(solicitacao.id, StatusSolicitacao.CANCELADA, usuario_id)
            cancelada = solicitacao.id

        mov = registrar(
            uow,
            TipoMovimentacao.SAIDA,
            produto.id,
            resultado.quantidade_retirada,
            resultado.peso_retirado,
            usuario_id,
            motivo or "Remoção de produto",
            origem_id=localizacao.id,
            evento=EventoMovimentacao.REMOCAO,
            total=True,
            forcada=True,
            solicitacao_cancelada=cancelada,
        )
        return {
            "produto": asdict(gravado),
            "localizacao": asdict(localizacao),
            "movimentacao": asdict(mov),
        }

    return _executar("remover_produto", {"produto_id": produto_id, "usuario_id": usuario_id}, db_path, corpo)


# -------------------------
# Retiradas
# -------------------------

def solicitar_retirada(
    produto_id: int,
    usuario_id: str,
    tipo: str = "TOTAL",
    quantidade_solicitada: Optional[int] = None,
    motivo: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    usuario_id = _exigir_usuario(usuario_id)
    dados = {
        "produto_id": produto_id,
        "tipo": tipo,
        "quantidade_solicitada": quantidade_solicitada,
        "motivo": motivo,
    }
    return _executar(
        "solicitar_retirada",
        {"produto_id": produto_id, "tipo": tipo, "usuario_id": usuario_id},
        db_path,
        lambda uow: retiradas.criar_solicitacao_retirada(uow, dados, usuario_id),
    )


def confirmar_retirada(
    produto_id: int,
    usuario_id: str,
    quantidade: Optional[int] = None,
    motivo: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Confirma a retirada pendente.

    ``quantidade=None`` confirma a quantidade da solicitação PARCIAL, ou
    retira tudo quando a solicitação é TOTAL; igual ao restante também é total.
    """
    usuario_id = _exigir_usuario(usuario_id)
    return _executar(
        "confirmar_retirada",
        {"produto_id": produto_id, "quantidade": quantidade, "usuario_id": usuario_id},
        db_path,
        lambda uow: retiradas.confirmar(uow, produto_id, usuario_id, quantidade, motivo),
    )


def cancelar_retirada(
    produto_id: int,
    usuario_id: str,
    motivo: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    usuario_id = _exigir_usuario(usuario_id)
    return _executar(
        "cancelar_retirada",
        {"produto_id": produto_id, "usuario_id": usuario_id},
        db_path,
        lambda uow: retiradas.cancelar(uow, produto_id, usuario_id, motivo),
    )


# -------------------------
# Capacidade (somente leitura)
# -------------------------

def validar_capacidade_localizacao(
    localizacao_id: int,
    peso: float,
    db_path: str = DB_PATH,
    incluir_sugestoes: bool = False,
    cfg: Optional[DefaultConfig] = None,
) -> Dict[str, Any]:
    cfg = cfg or carregar_parametros(db_path)
    with unidade_trabalho(db_path) as uow:
        resultado = alocacao.validar_capacidade(
            uow, localizacao_id, peso, cfg, nova_alocacao=True, incluir_sugestoes=incluir_sugestoes
        )
    return {"success": True, "data": resultado}


def buscar_localizacao_otima(
    dados: Dict[str, Any],
    db_path: str = DB_PATH,
    camara_id: Optional[int] = None,
) -> Dict[str, Any]:
    cfg = carregar_parametros(db_path)
    with unidade_trabalho(db_path) as uow:
        return alocacao.encontrar_localizacao_otima(uow, dados, cfg, camara_id=camara_id)


# -------------------------
# Ajustes de estoque
# -------------------------

def adicionar_estoque(
    produto_id: int,
    quantidade: int,
    usuario_id: str,
    motivo: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Acrescenta unidades a um produto LOCADO, respeitando a capacidade da localização."""
    usuario_id = _exigir_usuario(usuario_id)
    quantidade = _inteiro_positivo(quantidade, "quantidade")
    cfg = carregar_parametros(db_path)

    def corpo(uow: UnidadeTrabalho) -> Dict[str, Any]:
        produto = uow.exigir_produto(produto_id)
        _exigir_locado(produto, "Apenas produtos locados podem receber estoque")

        nova_quantidade = produto.quantidade + quantidade
        novo_peso = fsm.calcular_peso_total(nova_quantidade, produto.peso_por_unidade)
        acrescimo = round(novo_peso - produto.peso_total, 3)

        validacao = alocacao.validar_capacidade(
            uow, produto.localizacao_id, acrescimo, cfg, nova_alocacao=False
        )
        _exigir_capacidade(validacao, produto.localizacao_id)

        gravado = uow.gravar_produto(
            replace(produto, quantidade=nova_quantidade, peso_total=novo_peso, modificado_por=usuario_id),
            produto.versao,
        )
        localizacao = alocacao.adicionar_peso(uow, produto.localizacao_id, acrescimo)
        mov = registrar(
            uow,
            TipoMovimentacao.AJUSTE,
            produto.id,
            quantidade,
            acrescimo,
            usuario_id,
            motivo or "Adição de estoque",
            destino_id=localizacao.id,
            evento=EventoMovimentacao.ADICAO_ESTOQUE,
            quantidade_anterior=produto.quantidade,
            quantidade_nova=nova_quantidade,
        )
        return {
            "produto": asdict(gravado),
            "localizacao": asdict(localizacao),
            "movimentacao": asdict(mov),
            "warnings": validacao["warnings"],
        }

    return _executar(
        "adicionar_estoque",
        {"produto_id": produto_id, "quantidade": quantidade, "usuario_id": usuario_id},
        db_path,
        corpo,
    )


def registrar_ajuste_manual(
    produto_id: int,
    nova_quantidade: int,
    usuario_id: str,
    motivo: str,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Correção manual da quantidade (valor absoluto); gera movimentação não automática."""
    usuario_id = _exigir_usuario(usuario_id)
    if not motivo or not str(motivo).strip():
        raise ValidationError("Motivo é obrigatório para ajuste manual")
    nova_quantidade = _inteiro_positivo(nova_quantidade, "nova_quantidade")
    cfg = carregar_parametros(db_path)

    def corpo(uow: UnidadeTrabalho) -> Dict[str, Any]:
        produto = uow.exigir_produto(produto_id)
        _exigir_locado(produto, "Apenas produtos locados podem ser ajustados")
        if nova_quantidade == produto.quantidade:
            raise ValidationError(
                "Quantidade informada é igual à quantidade atual", quantidade=nova_quantidade
            )

        novo_peso = fsm.calcular_peso_total(nova_quantidade, produto.peso_por_unidade)
        delta = round(novo_peso - produto.peso_total, 3)
        warnings = []
        if delta > 0:
            validacao = alocacao.validar_capacidade(
                uow, produto.localizacao_id, delta, cfg, nova_alocacao=False
            )
            _exigir_capacidade(validacao, produto.localizacao_id)
            warnings = validacao["warnings"]

        gravado = uow.gravar_produto(
            replace(produto, quantidade=nova_quantidade, peso_total=novo_peso, modificado_por=usuario_id),
            produto.versao,
        )
        if delta > 0:
            localizacao = alocacao.adicionar_peso(uow, produto.localizacao_id, delta)
        else:
            localizacao = alocacao.remover_peso(uow, produto.localizacao_id, -delta)

        mov = registrar(
            uow,
            TipoMovimentacao.AJUSTE,
            produto.id,
            abs(nova_quantidade - produto.quantidade),
            abs(delta),
            usuario_id,
            str(motivo).strip(),
            origem_id=localizacao.id,
            destino_id=localizacao.id,
            automatica=False,
            evento=EventoMovimentacao.AJUSTE_MANUAL,
            quantidade_anterior=produto.quantidade,
            quantidade_nova=nova_quantidade,
            peso_anterior=produto.peso_total,
            peso_novo=novo_peso,
        )
        return {
            "produto": asdict(gravado),
            "localizacao": asdict(localizacao),
            "movimentacao": asdict(mov),
            "warnings": warnings,
        }

    return _executar(
        "registrar_ajuste_manual",
        {"produto_id": produto_id, "nova_quantidade": nova_quantidade, "usuario_id": usuario_id},
        db_path,
        corpo,
    )


# -------------------------
# Consultas
# -------------------------

def obter_produto(produto_id: int, db_path: str = DB_PATH) -> Dict[str, Any]:
    with unidade_trabalho(db_path) as uow:
        produto = uow.exigir_produto(produto_id)
        localizacao = (
            uow.localizacoes.obter(produto.localizacao_id) if produto.localizacao_id else None
        )
    return {
        "success": True,
        "data": {
            "produto": asdict(produto),
            "localizacao": asdict(localizacao) if localizacao else None,
        },
    }


def listar_produtos(status: Optional[str] = None, db_path: str = DB_PATH) -> Dict[str, Any]:
    if status and status not in StatusProduto.TODOS:
        raise ValidationError("Status de produto inválido", status=status)
    with unidade_trabalho(db_path) as uow:
        produtos = [asdict(p) for p in uow.produtos.listar(status)]
    return {"success": True, "data": produtos}
