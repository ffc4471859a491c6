# armazem/adapters/cli.py
"""
CLI do armazém de câmaras frias (Typer).

Comandos principais:
- migrate                              -> aplica migrações e cria views
- params set/get/show                  -> gerencia parâmetros globais
- camara criar/listar/expandir/status/localizacoes
- produto criar/mostrar/listar/mover/remover/adicionar/ajustar/entrada-lote <xlsx>
- retirada solicitar/confirmar/cancelar/pendentes/historico
- localizacao validar/otima
- movimentacoes historico/pendentes/verificar/reconciliar

Erros do motor (ArmazemError) são exibidos em um painel vermelho e o
comando termina com código 1.
"""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from armazem.config import DB_PATH, DEFAULTS, PARAM_KEYS
from armazem.domain.erros import ArmazemError
from armazem.infra.repositories import ParamsRepo
from armazem.infra.uow import preparar_banco
from armazem.usecases import camaras, movimentacoes, operacoes, retiradas
from armazem.usecases.entrada_lote import run_entrada_lote


app = typer.Typer(help="Armazém Câmara Fria: CLI")
console = Console()

DB_OPTION = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
USUARIO_OPTION = typer.Option("operador", "--usuario", "-u", help="Usuário responsável")
JSON_OPTION = typer.Option(False, "--json", help="Saída em JSON")


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    if isinstance(val, (dict, list)):
        return json.dumps(val, ensure_ascii=False, default=str)
    return str(val)


def _display_table(
    data: Dict[str, Any] | List[Dict[str, Any]],
    title: str = "Resultado",
    columns: Optional[List[str]] = None,
) -> None:
    """Exibe dados em tabelas formatadas usando Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    if isinstance(data, list):
        columns = columns or list(data[0].keys())
        table = Table(title=title, box=box.ROUNDED)
        for column in columns:
            numeric = isinstance(data[0].get(column), (int, float)) and not isinstance(
                data[0].get(column), bool
            )
            table.add_column(column, justify="right" if numeric else "left")
        for row in data:
            values = []
            for col in columns:
                val = row.get(col)
                if col == "status" and val in ("LOCADO", "active", "PENDENTE"):
                    values.append(f"[bold green]{val}[/]")
                elif col == "status" and val in ("AGUARDANDO_RETIRADA", "maintenance"):
                    values.append(f"[bold yellow]{val}[/]")
                elif col == "status" and val in ("RETIRADO", "inactive", "CANCELADA"):
                    values.append(f"[bold red]{val}[/]")
                else:
                    values.append(_fmt(val))
            table.add_row(*values)
        console.print(table)
        return

    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    for chave in columns or data.keys():
        table.add_row(chave, _fmt(data.get(chave)))
    console.print(table)


def _display_erro(e: ArmazemError) -> None:
    linhas = [e.message]
    for chave, valor in e.details.items():
        if valor in (None, [], {}):
            continue
        linhas.append(f"{chave}: {_fmt(valor)}")
    console.print(Panel("\n".join(linhas), title=f"Erro: {e.code}", border_style="red"))


def _comando(fn: Callable) -> Callable:
    """Prepara o banco e converte ArmazemError em painel + exit code 1."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        db_path = kwargs.get("db_path", DB_PATH)
        try:
            preparar_banco(db_path)
            return fn(*args, **kwargs)
        except ArmazemError as e:
            _display_erro(e)
            raise typer.Exit(code=1)

    return wrapper


def _mostrar_resultado(res: Dict[str, Any], como_json: bool, title: str, chave: str = "produto") -> None:
    data = res.get("data", res)
    if como_json:
        _print_json(data)
        return
    principal = data.get(chave) if isinstance(data, dict) else None
    _display_table(principal or data, title=title)
    for aviso in (data.get("warnings") or []) if isinstance(data, dict) else []:
        console.print(f"[yellow]Aviso:[/] {aviso}")


PRODUTO_COLS = ["id", "lote", "nome", "quantidade", "peso_por_unidade", "peso_total",
                "localizacao_id", "status", "versao"]
LOCALIZACAO_COLS = ["id", "codigo", "andar", "capacidade_max_kg", "peso_atual_kg",
                    "ocupada", "nivel_acesso", "versao"]
MOV_COLS = ["id", "timestamp", "tipo", "quantidade", "peso", "origem_id", "destino_id",
            "usuario_id", "automatica", "motivo"]


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPTION):
    """Aplica migrações e recria as views auxiliares."""
    preparar_banco(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


params_app = typer.Typer(help="Gerenciar parâmetros globais (capacidade, margem, verificação).")
app.add_typer(params_app, name="params")


@params_app.command("set")
@_comando
def cmd_params_set(
    capacidade_padrao_kg: Optional[float] = typer.Option(None, help="Capacidade das novas localizações (kg)"),
    margem_seguranca: Optional[float] = typer.Option(None, help="Ex.: 0.05 (5%)"),
    limite_sugestoes: Optional[int] = typer.Option(None, help="Alternativas sugeridas"),
    horas_verificacao_pendente: Optional[float] = typer.Option(None, help="Ex.: 48"),
    tolerancia_peso: Optional[float] = typer.Option(None, help="Ex.: 0.05 (5%)"),
    db_path: str = DB_OPTION,
):
    """Define parâmetros globais (apenas os informados são alterados)."""
    valores = {
        "capacidade_padrao_kg": capacidade_padrao_kg,
        "margem_seguranca": margem_seguranca,
        "limite_sugestoes": limite_sugestoes,
        "horas_verificacao_pendente": horas_verificacao_pendente,
        "tolerancia_peso": tolerancia_peso,
    }
    items = [(k, str(v)) for k, v in valores.items() if v is not None]
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
@_comando
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: margem_seguranca | limite_sugestoes"),
    db_path: str = DB_OPTION,
):
    """Mostra um parâmetro específico."""
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
@_comando
def cmd_params_show(db_path: str = DB_OPTION):
    """Exibe os parâmetros efetivos (com fallback para defaults)."""
    repo = ParamsRepo(db_path)
    linhas = [
        {
            "parametro": chave,
            "valor_atual": repo.get(chave, str(getattr(DEFAULTS, chave))),
            "valor_padrao": str(getattr(DEFAULTS, chave)),
        }
        for chave in PARAM_KEYS
    ]
    _display_table(linhas, title="Parâmetros do Sistema")
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# câmaras
# -----------------------

camara_app = typer.Typer(help="Câmaras e localizações.")
app.add_typer(camara_app, name="camara")


@camara_app.command("criar")
@_comando
def cmd_camara_criar(
    nome: str = typer.Argument(..., help="Nome da câmara"),
    quadras: int = typer.Option(..., help="1 a 100"),
    lados: int = typer.Option(..., help="1 a 20 (A..T)"),
    filas: int = typer.Option(..., help="1 a 100"),
    andares: int = typer.Option(..., help="1 a 20"),
    capacidade: Optional[float] = typer.Option(None, help="Capacidade de cada localização (kg)"),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Cadastra a câmara e gera todas as localizações."""
    res = camaras.criar_camara(
        {"nome": nome, "quadras": quadras, "lados": lados, "filas": filas,
         "andares": andares, "capacidade_padrao_kg": capacidade},
        db_path=db_path,
    )
    if como_json:
        _print_json(res["data"])
        return
    _display_table(res["data"]["camara"], title="Câmara Criada")
    console.print(f">> {res['data']['localizacoes_criadas']} localizações geradas.")


@camara_app.command("listar")
@_comando
def cmd_camara_listar(db_path: str = DB_OPTION, como_json: bool = JSON_OPTION):
    """Lista câmaras com ocupação."""
    dados = camaras.listar_camaras(db_path=db_path)
    if como_json:
        _print_json(dados)
    else:
        _display_table(dados, title="Câmaras")


@camara_app.command("expandir")
@_comando
def cmd_camara_expandir(
    camara_id: int = typer.Argument(...),
    quadras: Optional[int] = typer.Option(None),
    lados: Optional[int] = typer.Option(None),
    filas: Optional[int] = typer.Option(None),
    andares: Optional[int] = typer.Option(None),
    capacidade: Optional[float] = typer.Option(None, help="Capacidade das novas localizações (kg)"),
    db_path: str = DB_OPTION,
):
    """Aumenta as dimensões e gera as localizações novas."""
    res = camaras.expandir_camara(
        camara_id, quadras, lados, filas, andares, capacidade_padrao_kg=capacidade, db_path=db_path
    )
    _display_table(res["data"]["camara"], title="Câmara Expandida")
    console.print(f">> {res['data']['localizacoes_criadas']} localizações geradas.")


@camara_app.command("status")
@_comando
def cmd_camara_status(
    camara_id: int = typer.Argument(...),
    status: str = typer.Argument(..., help="active | maintenance | inactive"),
    db_path: str = DB_OPTION,
):
    """Altera o status da câmara."""
    res = camaras.alterar_status_camara(camara_id, status, db_path=db_path)
    _display_table(res["data"], title="Câmara")


@camara_app.command("localizacoes")
@_comando
def cmd_camara_localizacoes(
    camara_id: int = typer.Argument(...),
    livres: bool = typer.Option(False, "--livres", help="Apenas desocupadas"),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Lista as localizações de uma câmara."""
    dados = camaras.listar_localizacoes(camara_id, apenas_livres=livres, db_path=db_path)
    if como_json:
        _print_json(dados)
    else:
        _display_table(dados, title=f"Localizações da câmara {camara_id}", columns=LOCALIZACAO_COLS)


# -----------------------
# produtos
# -----------------------

produto_app = typer.Typer(help="Ciclo de vida dos produtos (lotes).")
app.add_typer(produto_app, name="produto")


@produto_app.command("criar")
@_comando
def cmd_produto_criar(
    lote: str = typer.Option(..., help="Identificação do lote"),
    quantidade: int = typer.Option(..., help="Unidades (sacos/bags)"),
    peso_unidade: float = typer.Option(..., "--peso-unidade", help="Peso por unidade (kg)"),
    localizacao_id: Optional[int] = typer.Option(None, "--localizacao", help="Id da localização (omitido = melhor livre)"),
    camara_id: Optional[int] = typer.Option(None, "--camara", help="Restringe a busca a uma câmara"),
    nome: Optional[str] = typer.Option(None),
    tipo_semente: Optional[str] = typer.Option(None, "--tipo-semente"),
    armazenamento: str = typer.Option("saco", help="saco | bag"),
    validade: Optional[str] = typer.Option(None, help="AAAA-MM-DD"),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Aloca um novo produto."""
    res = operacoes.criar_produto(
        {
            "lote": lote,
            "quantidade": quantidade,
            "peso_por_unidade": peso_unidade,
            "localizacao_id": localizacao_id,
            "camara_id": camara_id,
            "nome": nome,
            "tipo_semente": tipo_semente,
            "tipo_armazenamento": armazenamento,
            "data_validade": validade,
        },
        usuario,
        db_path=db_path,
    )
    _mostrar_resultado(res, como_json, "Produto Alocado")
    if not como_json:
        console.print(f">> Localização: {res['data']['localizacao']['codigo']}")


@produto_app.command("mostrar")
@_comando
def cmd_produto_mostrar(
    produto_id: int = typer.Argument(...),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Mostra um produto e sua localização."""
    res = operacoes.obter_produto(produto_id, db_path=db_path)
    _mostrar_resultado(res, como_json, "Produto")


@produto_app.command("listar")
@_comando
def cmd_produto_listar(
    status: Optional[str] = typer.Option(None, help="LOCADO | AGUARDANDO_RETIRADA | RETIRADO"),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Lista produtos (opcionalmente por status)."""
    res = operacoes.listar_produtos(status, db_path=db_path)
    if como_json:
        _print_json(res["data"])
    else:
        _display_table(res["data"], title="Produtos", columns=PRODUTO_COLS)


@produto_app.command("mover")
@_comando
def cmd_produto_mover(
    produto_id: int = typer.Argument(...),
    destino_id: int = typer.Argument(..., help="Id da nova localização"),
    motivo: Optional[str] = typer.Option(None),
    analisar: bool = typer.Option(False, "--analisar", help="Inclui análise de otimização"),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Transfere o produto para outra localização."""
    res = operacoes.mover_produto(
        produto_id, destino_id, usuario, motivo=motivo, analisar=analisar, db_path=db_path
    )
    _mostrar_resultado(res, como_json, "Produto Movido")
    if analisar and not como_json:
        _display_table(res["data"]["analise"], title="Análise de Otimização")


@produto_app.command("remover")
@_comando
def cmd_produto_remover(
    produto_id: int = typer.Argument(...),
    motivo: Optional[str] = typer.Option(None),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Remoção forçada (retirada total sem solicitação)."""
    res = operacoes.remover_produto(produto_id, usuario, motivo=motivo, db_path=db_path)
    _mostrar_resultado(res, como_json, "Produto Removido")


@produto_app.command("adicionar")
@_comando
def cmd_produto_adicionar(
    produto_id: int = typer.Argument(...),
    quantidade: int = typer.Argument(..., help="Unidades a acrescentar"),
    motivo: Optional[str] = typer.Option(None),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Acrescenta unidades a um produto locado."""
    res = operacoes.adicionar_estoque(produto_id, quantidade, usuario, motivo=motivo, db_path=db_path)
    _mostrar_resultado(res, como_json, "Estoque Adicionado")


@produto_app.command("ajustar")
@_comando
def cmd_produto_ajustar(
    produto_id: int = typer.Argument(...),
    nova_quantidade: int = typer.Argument(..., help="Quantidade correta (valor absoluto)"),
    motivo: str = typer.Option(..., help="Justificativa do ajuste"),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Ajuste manual de quantidade (movimentação não automática)."""
    res = operacoes.registrar_ajuste_manual(produto_id, nova_quantidade, usuario, motivo, db_path=db_path)
    _mostrar_resultado(res, como_json, "Ajuste Registrado")


@produto_app.command("entrada-lote")
@_comando
def cmd_produto_entrada_lote(
    path: str = typer.Argument(..., help="Caminho do XLSX de lotes"),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Registra entradas em lote a partir de um XLSX."""
    info = run_entrada_lote(path, usuario, db_path=db_path)
    if como_json:
        _print_json(info)
        return
    console.print(
        Panel(
            f"Criados: {len(info['criados'])}\nRecusados: {len(info['recusados'])}",
            title="Entrada em Lote",
        )
    )
    if info["criados"]:
        _display_table(info["criados"], title="Lotes Alocados")
    if info["recusados"]:
        _display_table(info["recusados"], title="Linhas Recusadas", columns=["linha", "lote", "code", "message"])


# -----------------------
# retiradas
# -----------------------

retirada_app = typer.Typer(help="Solicitação e confirmação de retiradas.")
app.add_typer(retirada_app, name="retirada")


@retirada_app.command("solicitar")
@_comando
def cmd_retirada_solicitar(
    produto_id: int = typer.Argument(...),
    tipo: str = typer.Option("TOTAL", help="TOTAL | PARCIAL"),
    quantidade: Optional[int] = typer.Option(None, help="Obrigatória para PARCIAL"),
    motivo: Optional[str] = typer.Option(None),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Abre uma solicitação de retirada."""
    res = operacoes.solicitar_retirada(
        produto_id, usuario, tipo=tipo, quantidade_solicitada=quantidade, motivo=motivo, db_path=db_path
    )
    _mostrar_resultado(res, como_json, "Retirada Solicitada", chave="solicitacao")


@retirada_app.command("confirmar")
@_comando
def cmd_retirada_confirmar(
    produto_id: int = typer.Argument(...),
    quantidade: Optional[int] = typer.Option(None, help="Omitida = quantidade da solicitação (TOTAL retira tudo)"),
    motivo: Optional[str] = typer.Option(None),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Confirma a retirada (total ou parcial)."""
    res = operacoes.confirmar_retirada(produto_id, usuario, quantidade=quantidade, motivo=motivo, db_path=db_path)
    _mostrar_resultado(res, como_json, "Retirada Confirmada")


@retirada_app.command("cancelar")
@_comando
def cmd_retirada_cancelar(
    produto_id: int = typer.Argument(...),
    motivo: Optional[str] = typer.Option(None),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Cancela a solicitação pendente."""
    res = operacoes.cancelar_retirada(produto_id, usuario, motivo=motivo, db_path=db_path)
    _mostrar_resultado(res, como_json, "Retirada Cancelada")


@retirada_app.command("pendentes")
@_comando
def cmd_retirada_pendentes(db_path: str = DB_OPTION, como_json: bool = JSON_OPTION):
    """Lista solicitações pendentes."""
    dados = retiradas.listar_pendentes(db_path=db_path)
    if como_json:
        _print_json(dados)
    else:
        _display_table(dados, title="Solicitações Pendentes")


@retirada_app.command("historico")
@_comando
def cmd_retirada_historico(
    produto_id: int = typer.Argument(...),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Solicitações de retirada de um produto."""
    dados = retiradas.listar_por_produto(produto_id, db_path=db_path)
    if como_json:
        _print_json(dados)
    else:
        _display_table(dados, title=f"Solicitações do produto {produto_id}")


# -----------------------
# localizações
# -----------------------

localizacao_app = typer.Typer(help="Capacidade e busca de localizações.")
app.add_typer(localizacao_app, name="localizacao")


@localizacao_app.command("validar")
@_comando
def cmd_localizacao_validar(
    localizacao_id: int = typer.Argument(...),
    peso: float = typer.Argument(..., help="Peso a acrescentar (kg)"),
    sugestoes: bool = typer.Option(False, "--sugestoes", help="Inclui alternativas livres"),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Valida se um peso cabe na localização (somente leitura)."""
    res = operacoes.validar_capacidade_localizacao(
        localizacao_id, peso, db_path=db_path, incluir_sugestoes=sugestoes
    )
    data = res["data"]
    if como_json:
        _print_json(data)
        return
    cor = "green" if data["valid"] else "red"
    console.print(Panel(data.get("reason") or "Capacidade disponível", title=data["code"], border_style=cor))
    if data.get("analysis"):
        _display_table(data["analysis"], title="Análise")
    for aviso in data["warnings"]:
        console.print(f"[yellow]Aviso:[/] {aviso}")
    if data.get("suggestions"):
        _display_table(
            [{"score": s["score"], **s["localizacao"]} for s in data["suggestions"]],
            title="Sugestões",
            columns=["score"] + LOCALIZACAO_COLS,
        )


@localizacao_app.command("otima")
@_comando
def cmd_localizacao_otima(
    peso_unidade: float = typer.Option(..., "--peso-unidade", help="Peso por unidade (kg)"),
    quantidade: int = typer.Option(1, help="Unidades"),
    camara_id: Optional[int] = typer.Option(None, "--camara"),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Sugere a melhor localização livre para um produto."""
    res = operacoes.buscar_localizacao_otima(
        {"peso_por_unidade": peso_unidade, "quantidade": quantidade}, db_path=db_path, camara_id=camara_id
    )
    if como_json:
        _print_json(res)
        return
    if not res["success"]:
        console.print(Panel(res["message"], border_style="yellow"))
        raise typer.Exit(code=1)
    melhor = res["data"]
    _display_table(
        [{"score": melhor["score"], **melhor["location"]}]
        + [{"score": a["score"], **a["localizacao"]} for a in melhor["alternatives"]],
        title="Localização Ótima (primeira linha) e Alternativas",
        columns=["score"] + LOCALIZACAO_COLS,
    )


# -----------------------
# movimentações
# -----------------------

mov_app = typer.Typer(help="Ledger de movimentações.")
app.add_typer(mov_app, name="movimentacoes")


@mov_app.command("historico")
@_comando
def cmd_mov_historico(
    produto_id: int = typer.Argument(...),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Movimentações de um produto em ordem cronológica."""
    res = movimentacoes.historico_produto(produto_id, db_path=db_path)
    if como_json:
        _print_json(res["data"])
    else:
        _display_table(res["data"], title=f"Histórico do produto {produto_id}", columns=MOV_COLS)


@mov_app.command("pendentes")
@_comando
def cmd_mov_pendentes(
    horas: Optional[float] = typer.Option(None, help="Idade mínima (padrão: parâmetro horas_verificacao_pendente)"),
    auto: bool = typer.Option(False, "--auto", help="Verifica automaticamente as consistentes"),
    usuario: str = typer.Option("sistema", "--usuario", "-u"),
    db_path: str = DB_OPTION,
    como_json: bool = JSON_OPTION,
):
    """Movimentações sem verificação mais antigas que o limite."""
    res = movimentacoes.verificar_pendentes(
        db_path=db_path, horas=horas, auto_verificar=auto, usuario_id=usuario
    )
    resumo = res["data"]
    if como_json:
        _print_json(resumo)
        return
    console.print(
        Panel(
            f"Total: {resumo['total']}\n"
            f"Auto-verificáveis: {resumo['auto_verificaveis']}\n"
            f"Revisão manual: {resumo['revisao_manual']}\n"
            f"Verificadas agora: {resumo['verificadas']}",
            title=f"Pendentes há mais de {resumo['horas']:g}h",
        )
    )
    if resumo["itens"]:
        _display_table(
            [
                {
                    "id": i["movimentacao"]["id"],
                    "tipo": i["movimentacao"]["tipo"],
                    "lote": i["lote"],
                    "peso": i["movimentacao"]["peso"],
                    "peso_esperado": i["peso_esperado"],
                    "idade_horas": i["idade_horas"],
                    "recomendacao": i["recomendacao"],
                }
                for i in resumo["itens"]
            ],
            title="Movimentações Pendentes",
        )


@mov_app.command("verificar")
@_comando
def cmd_mov_verificar(
    movimentacao_id: int = typer.Argument(...),
    notas: Optional[str] = typer.Option(None),
    usuario: str = USUARIO_OPTION,
    db_path: str = DB_OPTION,
):
    """Registra a verificação manual de uma movimentação."""
    movimentacoes.verificar(movimentacao_id, usuario, notas=notas, db_path=db_path)
    typer.echo(f">> Movimentação {movimentacao_id} verificada.")


@mov_app.command("reconciliar")
@_comando
def cmd_mov_reconciliar(db_path: str = DB_OPTION, como_json: bool = JSON_OPTION):
    """Compara o replay do ledger com o estado atual."""
    res = movimentacoes.reconciliar(db_path=db_path)
    data = res["data"]
    if como_json:
        _print_json(data)
        return
    if data["consistente"]:
        console.print(Panel("Ledger e estado atual conferem", border_style="green"))
        return
    _display_table(data["divergencias"], title="Divergências")
    raise typer.Exit(code=1)


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
