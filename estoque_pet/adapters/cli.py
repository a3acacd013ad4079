# estoque_pet/adapters/cli.py
"""
CLI do razão de estoque (Typer).

Comandos principais:
- migrate                          -> aplica migrações e cria views
- prefs set/get/show               -> preferências de estoque do tenant
- produto cadastrar/listar/desativar/excluir
- entrada | saida | ajuste         -> registra uma movimentação no razão
- movimentacoes                    -> lista o razão (filtros e paginação)
- posicao                          -> posição de estoque (all, below-min, out-of-stock, expire-soon)
- alertas                          -> ruptura, abaixo do mínimo, validade próxima
- verificar | reconciliar          -> auditoria de consistência do razão
- inventario abrir/contar/finalizar/cancelar/mostrar
- entrada-lotes | saida-lotes      -> movimentações em lote a partir de XLSX/CSV
- rel motivos                      -> saídas por motivo
- logs                             -> últimas linhas dos arquivos de log

Todos os comandos aceitam `--db` e os de consulta aceitam `--json`.
Códigos de saída: 1 (validação / não encontrado), 2 (conflito), 3 (integridade).
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from estoque_pet.config import DB_PATH, DEFAULTS
from estoque_pet.domain.errors import ConflictError, EstoqueError, IntegrityError, ProductNotFound
from estoque_pet.domain.models import PreferenciasEstoque, Produto, to_dict
from estoque_pet.infra.logger import get_log_summary
from estoque_pet.infra.migrations import apply_migrations
from estoque_pet.infra.repositories import PreferenciasRepo, SqliteRepositorioEstoque
from estoque_pet.infra.views import create_views
from estoque_pet.usecases import inventario
from estoque_pet.usecases.movimentacao_lote import run_movimentacao_lote
from estoque_pet.usecases.posicao_estoque import ProjetorEstoque
from estoque_pet.usecases.razao import Razao
from estoque_pet.usecases.relatorios import (
    alertas_estoque,
    relatorio_alertas,
    relatorio_saidas_por_motivo,
    resumo_saidas_por_motivo,
)
from estoque_pet.usecases.verificar_estoque import reconciliar_produto, run_verificar


app = typer.Typer(help="Estoque Pet - razão de movimentações")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
JSON_OPT = typer.Option(False, "--json", help="Imprime JSON em vez de tabelas")


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(val: Any) -> str:
    if val is None:
        return "-"
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, int):
        return str(val)
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return str(val)


_CORES_STATUS = {"RUPTURA": "bold red", "ABAIXO_MINIMO": "bold yellow", "NORMAL": "bold green"}


def _display_table(data: List[Dict[str, Any]], columns: List[str], title: str = "Resultado") -> None:
    """Exibe uma lista de dicionários em tabela Rich (colunas escolhidas)."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    for col in columns:
        if col in {"quantidade", "quantidade_delta", "saldo_anterior", "saldo_resultante",
                   "estoque_atual", "estoque_minimo_efetivo", "custo_unitario"}:
            table.add_column(col, justify="right")
        else:
            table.add_column(col)
    for row in data:
        valores = []
        for col in columns:
            val = row.get(col)
            if col == "status" and val in _CORES_STATUS:
                valores.append(f"[{_CORES_STATUS[val]}]{val}[/]")
            else:
                valores.append(_fmt(val))
        table.add_row(*valores)
    console.print(table)


def _display_rel(res: Tuple[List[str], List[List[Any]], Optional[str]], title: str) -> None:
    cols, rows, msg = res
    if msg:
        console.print(Panel(msg, title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    for c in cols:
        table.add_column(c)
    for r in rows:
        table.add_row(*[str(v) for v in r])
    console.print(table)


def _display_resultado(dados: Dict[str, Any], title: str) -> None:
    mov, prod = dados["movement"], dados["product"]
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    table.add_row("Produto", f"{prod['sku']} - {prod['nome']}")
    table.add_row("Tipo", mov["tipo"])
    table.add_row("Sequência", str(mov["sequencia"]))
    table.add_row("Variação", _fmt(mov["quantidade_delta"]))
    table.add_row("Saldo", f"{_fmt(mov['saldo_anterior'])} → {_fmt(mov['saldo_resultante'])}")
    if mov.get("estoque_minimo_novo") is not None:
        table.add_row("Estoque mínimo", f"{_fmt(mov['estoque_minimo_anterior'])} → {_fmt(mov['estoque_minimo_novo'])}")
    if mov.get("motivo"):
        table.add_row("Motivo", mov["motivo"] + (f" ({mov['motivo_detalhe']})" if mov.get("motivo_detalhe") else ""))
    if mov.get("documento"):
        table.add_row("Documento", mov["documento"])
    table.add_row("Versão", str(prod["versao"]))
    console.print(table)


_EXIT_CODES = ((IntegrityError, 3), (ConflictError, 2))


@contextmanager
def _tratando_erros() -> Iterator[None]:
    """Converte erros do domínio em painel vermelho e código de saída."""
    try:
        yield
    except EstoqueError as e:
        detalhes = "\n".join(f"{k}: {v}" for k, v in e.detalhes.items())
        corpo = e.mensagem + (f"\n\n[dim]{detalhes}[/dim]" if detalhes else "")
        console.print(Panel(corpo, title=f"Erro ({e.kind})", border_style="red"))
        code = next((c for cls, c in _EXIT_CODES if isinstance(e, cls)), 1)
        raise typer.Exit(code=code)


def _contexto(db_path: str) -> Tuple[SqliteRepositorioEstoque, PreferenciasEstoque]:
    apply_migrations(db_path)
    create_views(db_path)
    return SqliteRepositorioEstoque(db_path), PreferenciasRepo(db_path).carregar()


def _razao(db_path: str) -> Razao:
    repo, prefs = _contexto(db_path)
    return Razao(repo, prefs)


def _resolver_produto(razao: Razao, ref: str) -> Produto:
    """Aceita id ou SKU."""
    p = razao.repo.obter_produto(ref) or razao.repo.obter_produto_por_sku(ref)
    if p is None:
        raise ProductNotFound(ref)
    return p


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Aplica migrações e recria as views auxiliares."""
    apply_migrations(db_path)
    create_views(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


prefs_app = typer.Typer(help="Gerenciar preferências de estoque.")
app.add_typer(prefs_app, name="prefs")


@prefs_app.command("set")
def cmd_prefs_set(
    considerar_validade: Optional[bool] = typer.Option(None, "--considerar-validade/--ignorar-validade"),
    estoque_minimo_padrao: Optional[float] = typer.Option(None, help="Mínimo usado quando o produto não define (ex.: 10)"),
    dias_alerta_validade: Optional[int] = typer.Option(None, help="Janela de validade próxima em dias (ex.: 30)"),
    permitir_negativo: Optional[bool] = typer.Option(None, "--permitir-negativo/--bloquear-negativo"),
    db_path: str = DB_OPT,
):
    """Define preferências (apenas as informadas são alteradas)."""
    apply_migrations(db_path)
    repo = PreferenciasRepo(db_path)
    items: List[Tuple[str, str]] = []
    if considerar_validade is not None:
        items.append(("considerar_validade", "1" if considerar_validade else "0"))
    if estoque_minimo_padrao is not None:
        if estoque_minimo_padrao < 0:
            typer.echo("estoque_minimo_padrao não pode ser negativo.")
            raise typer.Exit(code=1)
        items.append(("estoque_minimo_padrao", str(estoque_minimo_padrao)))
    if dias_alerta_validade is not None:
        if dias_alerta_validade < 0:
            typer.echo("dias_alerta_validade não pode ser negativo.")
            raise typer.Exit(code=1)
        items.append(("dias_alerta_validade", str(dias_alerta_validade)))
    if permitir_negativo is not None:
        items.append(("permitir_estoque_negativo", "1" if permitir_negativo else "0"))
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos uma preferência.")
        raise typer.Exit(code=1)
    repo.set_many(items)
    typer.echo(">> Preferências atualizadas.")


@prefs_app.command("get")
def cmd_prefs_get(
    chave: str = typer.Argument(..., help="Ex.: estoque_minimo_padrao | dias_alerta_validade"),
    db_path: str = DB_OPT,
):
    """Mostra uma preferência específica (valor armazenado)."""
    apply_migrations(db_path)
    val = PreferenciasRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@prefs_app.command("show")
def cmd_prefs_show(db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Exibe as preferências efetivas (com fallback para defaults)."""
    apply_migrations(db_path)
    efetivas = to_dict(PreferenciasRepo(db_path).carregar())
    if as_json:
        _print_json(efetivas)
        return
    table = Table(title="Preferências de Estoque")
    table.add_column("Preferência")
    table.add_column("Valor Atual")
    table.add_column("Valor Padrão")
    for chave, valor in efetivas.items():
        table.add_row(chave, _fmt(valor), _fmt(getattr(DEFAULTS, chave)))
    console.print(table)
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# produtos
# -----------------------

produto_app = typer.Typer(help="Cadastro mínimo de produtos.")
app.add_typer(produto_app, name="produto")

_COLS_PRODUTO = ["sku", "nome", "unidade", "estoque_atual", "estoque_minimo", "data_validade", "ativo", "bloqueado", "id"]


@produto_app.command("cadastrar")
def cmd_produto_cadastrar(
    sku: str = typer.Argument(...),
    nome: str = typer.Argument(...),
    unidade: str = typer.Option("UN", help="UN | KG | L | CX"),
    minimo: Optional[str] = typer.Option(None, "--minimo", help="Estoque mínimo do produto"),
    validade: Optional[str] = typer.Option(None, "--validade", help="AAAA-MM-DD"),
    saldo_inicial: str = typer.Option("0", help="Saldo na adoção do razão"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Cadastra um produto."""
    with _tratando_erros():
        p = _razao(db_path).cadastrar_produto(sku, nome, unidade, minimo, validade, saldo_inicial)
    if as_json:
        _print_json(to_dict(p))
    else:
        typer.echo(f">> Produto cadastrado: {p.sku} ({p.id})")


@produto_app.command("listar")
def cmd_produto_listar(
    todos: bool = typer.Option(False, "--todos", help="Inclui inativos"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Lista produtos."""
    repo, _ = _contexto(db_path)
    dados = [to_dict(p) for p in repo.listar_produtos(incluir_inativos=todos)]
    if as_json:
        _print_json(dados)
    else:
        _display_table(dados, _COLS_PRODUTO, title="Produtos")


@produto_app.command("desativar")
def cmd_produto_desativar(produto: str = typer.Argument(..., help="ID ou SKU"), db_path: str = DB_OPT):
    """Desativa um produto (não aceita novas movimentações)."""
    with _tratando_erros():
        razao = _razao(db_path)
        p = razao.desativar_produto(_resolver_produto(razao, produto).id)
    typer.echo(f">> Produto desativado: {p.sku}")


@produto_app.command("excluir")
def cmd_produto_excluir(produto: str = typer.Argument(..., help="ID ou SKU"), db_path: str = DB_OPT):
    """Exclui um produto; com histórico no razão, apenas desativa."""
    with _tratando_erros():
        razao = _razao(db_path)
        p = _resolver_produto(razao, produto)
        resultado = razao.excluir_produto(p.id)
    typer.echo(f">> Produto {p.sku}: {resultado}")


# -----------------------
# movimentações
# -----------------------

def _movimentar(db_path: str, tipo: str, produto: str, payload: Dict[str, Any], versao: Optional[int], as_json: bool) -> None:
    with _tratando_erros():
        razao = _razao(db_path)
        p = _resolver_produto(razao, produto)
        res = razao.registrar_movimentacao(tipo, p.id, payload, versao_esperada=versao)
    if as_json:
        _print_json(res.to_dict())
    else:
        _display_resultado(res.to_dict(), title=f"{tipo.capitalize()} registrada")


@app.command("entrada")
def cmd_entrada(
    produto: str = typer.Argument(..., help="ID ou SKU"),
    quantidade: str = typer.Argument(..., help="Quantidade (> 0)"),
    custo: Optional[str] = typer.Option(None, help="Custo unitário"),
    documento: Optional[str] = typer.Option(None, help="Nota fiscal / documento"),
    obs: Optional[str] = typer.Option(None, help="Observação"),
    usuario: Optional[str] = typer.Option(None),
    versao: Optional[int] = typer.Option(None, help="Versão esperada do produto"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Registra uma ENTRADA."""
    payload = {"quantidade": quantidade, "custo_unitario": custo, "documento": documento, "observacao": obs, "usuario": usuario}
    _movimentar(db_path, "ENTRADA", produto, payload, versao, as_json)


@app.command("saida")
def cmd_saida(
    produto: str = typer.Argument(..., help="ID ou SKU"),
    quantidade: str = typer.Argument(..., help="Quantidade (> 0)"),
    motivo: Optional[str] = typer.Option(None, help="VENDA | PERDA | CONSUMO | OUTRO (ou texto livre)"),
    detalhe: Optional[str] = typer.Option(None, help="Detalhe do motivo"),
    documento: Optional[str] = typer.Option(None),
    obs: Optional[str] = typer.Option(None),
    usuario: Optional[str] = typer.Option(None),
    versao: Optional[int] = typer.Option(None, help="Versão esperada do produto"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Registra uma SAÍDA."""
    payload = {
        "quantidade": quantidade, "motivo": motivo, "motivo_detalhe": detalhe,
        "documento": documento, "observacao": obs, "usuario": usuario,
    }
    _movimentar(db_path, "SAIDA", produto, payload, versao, as_json)


@app.command("ajuste")
def cmd_ajuste(
    produto: str = typer.Argument(..., help="ID ou SKU"),
    saldo: Optional[str] = typer.Option(None, "--saldo", help="Novo saldo absoluto (>= 0)"),
    minimo: Optional[str] = typer.Option(None, "--minimo", help="Novo estoque mínimo (>= 0)"),
    documento: Optional[str] = typer.Option(None),
    obs: Optional[str] = typer.Option(None),
    usuario: Optional[str] = typer.Option(None),
    versao: Optional[int] = typer.Option(None, help="Versão esperada do produto"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Registra um AJUSTE (saldo e/ou mínimo em uma única movimentação)."""
    payload: Dict[str, Any] = {"documento": documento, "observacao": obs, "usuario": usuario}
    if saldo is not None:
        payload["alterar_saldo"] = {"novo_saldo": saldo}
    if minimo is not None:
        payload["alterar_minimo"] = {"novo_minimo": minimo}
    _movimentar(db_path, "AJUSTE", produto, payload, versao, as_json)


_COLS_MOV = ["data", "sequencia", "tipo", "sku", "quantidade_delta", "saldo_resultante", "motivo", "documento"]


@app.command("movimentacoes")
def cmd_movimentacoes(
    produto: Optional[str] = typer.Option(None, help="ID ou SKU"),
    tipo: Optional[str] = typer.Option(None, help="ENTRADA | SAIDA | AJUSTE"),
    q: Optional[str] = typer.Option(None, help="Busca por nome, SKU ou documento"),
    de: Optional[str] = typer.Option(None, help="Data inicial (AAAA-MM-DD, inclusiva)"),
    ate: Optional[str] = typer.Option(None, help="Data final (AAAA-MM-DD, inclusiva)"),
    pagina: int = typer.Option(1, min=1),
    por_pagina: int = typer.Option(50, min=1),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Lista o razão em ordem cronológica."""
    with _tratando_erros():
        razao = _razao(db_path)
        produto_id = _resolver_produto(razao, produto).id if produto else None
        criterios = dict(produto_id=produto_id, tipo=tipo, texto=q, data_inicio=de, data_fim=ate)
        total = razao.contar_movimentacoes(**criterios)
        movs = razao.listar_movimentacoes(limite=por_pagina, deslocamento=(pagina - 1) * por_pagina, **criterios)
    dados = [to_dict(m) for m in movs]
    if as_json:
        _print_json({"itens": dados, "total": total, "pagina": pagina, "por_pagina": por_pagina})
        return
    for d in dados:
        d["data"] = d["data"][:19].replace("T", " ")
    _display_table(dados, _COLS_MOV, title=f"Movimentações ({total}) - página {pagina}")


_COLS_POSICAO = ["sku", "nome", "estoque_atual", "estoque_minimo_efetivo", "status", "data_validade", "dias_para_vencer"]


@app.command("posicao")
def cmd_posicao(
    filtro: str = typer.Option("all", help="all | below-min | out-of-stock | expire-soon"),
    dias: Optional[int] = typer.Option(None, help="Janela de validade (padrão: preferências)"),
    q: Optional[str] = typer.Option(None, help="Busca por nome ou SKU"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Posição de estoque dos produtos ativos."""
    with _tratando_erros():
        repo, prefs = _contexto(db_path)
        itens = [p.to_dict() for p in ProjetorEstoque(repo, prefs).posicao_estoque(filtro, dias, q)]
    if as_json:
        _print_json(itens)
    else:
        _display_table(itens, _COLS_POSICAO, title=f"Posição de Estoque ({filtro})")


@app.command("alertas")
def cmd_alertas(db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Alertas de ruptura, estoque abaixo do mínimo e validade próxima."""
    repo, prefs = _contexto(db_path)
    if as_json:
        _print_json(alertas_estoque(repo, prefs))
    else:
        _display_rel(relatorio_alertas(repo, prefs), title="Alertas de Estoque")


# -----------------------
# auditoria
# -----------------------

@app.command("verificar")
def cmd_verificar(
    produto: Optional[str] = typer.Option(None, help="ID ou SKU (padrão: todos)"),
    bloquear: bool = typer.Option(True, "--bloquear/--sem-bloqueio", help="Bloqueia produtos divergentes"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Confere o saldo em cache contra o replay do razão."""
    with _tratando_erros():
        razao = _razao(db_path)
        produto_id = _resolver_produto(razao, produto).id if produto else None
        divergencias = [d.to_dict() for d in run_verificar(razao.repo, produto_id, bloquear)]
    if as_json:
        _print_json(divergencias)
    elif not divergencias:
        console.print(Panel("Razão consistente: nenhum saldo divergente.", title="Verificação", border_style="green"))
    else:
        _display_table(
            divergencias,
            ["sku", "motivo", "saldo_cache", "saldo_replay", "diferenca", "sequencia"],
            title="Divergências (produtos bloqueados)" if bloquear else "Divergências",
        )
    if divergencias:
        raise typer.Exit(code=3)


@app.command("reconciliar")
def cmd_reconciliar(
    produto: str = typer.Argument(..., help="ID ou SKU"),
    usuario: Optional[str] = typer.Option(None),
    db_path: str = DB_OPT,
):
    """Reconciliação manual: saldo passa a ser o replay do razão e o produto é desbloqueado."""
    with _tratando_erros():
        razao = _razao(db_path)
        p = reconciliar_produto(razao.repo, _resolver_produto(razao, produto).id, usuario)
    typer.echo(f">> Produto {p.sku} reconciliado. Saldo: {_fmt(p.estoque_atual)}")


# -----------------------
# inventário
# -----------------------

inv_app = typer.Typer(help="Contagens de inventário.")
app.add_typer(inv_app, name="inventario")


def _display_contagem(dados: Dict[str, Any]) -> None:
    console.print(f"[bold]Inventário {dados['id']}[/bold] ({dados['tipo']}) - {dados['status']}")
    _display_table(dados["itens"], ["sku", "nome", "sistema_na_abertura", "contagem"], title="Itens")


@inv_app.command("abrir")
def cmd_inv_abrir(
    tipo: str = typer.Option("CEGA", help="CEGA | PARCIAL"),
    produto: Optional[List[str]] = typer.Option(None, help="ID ou SKU (repetível); padrão: todos os ativos"),
    obs: Optional[str] = typer.Option(None),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Abre uma contagem fotografando o saldo de sistema."""
    with _tratando_erros():
        razao = _razao(db_path)
        ids = [_resolver_produto(razao, ref).id for ref in produto] if produto else None
        c = inventario.abrir_contagem(razao, tipo, ids, obs)
    if as_json:
        _print_json(to_dict(c))
    else:
        _display_contagem(to_dict(c))


@inv_app.command("contar")
def cmd_inv_contar(
    contagem_id: str = typer.Argument(...),
    produto: str = typer.Argument(..., help="ID ou SKU"),
    quantidade: str = typer.Argument(..., help="Quantidade física (>= 0)"),
    db_path: str = DB_OPT,
):
    """Registra a quantidade contada de um item."""
    with _tratando_erros():
        razao = _razao(db_path)
        inventario.registrar_contagem(razao, contagem_id, _resolver_produto(razao, produto).id, quantidade)
    typer.echo(">> Contagem registrada.")


@inv_app.command("finalizar")
def cmd_inv_finalizar(
    contagem_id: str = typer.Argument(...),
    usuario: Optional[str] = typer.Option(None),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Finaliza a contagem gerando os AJUSTES das diferenças."""
    with _tratando_erros():
        res = inventario.finalizar_contagem(_razao(db_path), contagem_id, usuario)
    if as_json:
        _print_json(res)
    else:
        console.print(Panel(
            f"Ajustes gerados: {len(res['ajustes'])}\nFalhas: {len(res['falhas'])}\nStatus: {res['contagem']['status']}",
            title="Inventário",
        ))
        if res["falhas"]:
            _display_table(res["falhas"], ["produto_id", "erro", "mensagem"], title="Falhas")
    if res["falhas"]:
        raise typer.Exit(code=1)


@inv_app.command("cancelar")
def cmd_inv_cancelar(contagem_id: str = typer.Argument(...), db_path: str = DB_OPT):
    """Cancela uma contagem aberta."""
    with _tratando_erros():
        inventario.cancelar_contagem(_razao(db_path), contagem_id)
    typer.echo(">> Inventário cancelado.")


@inv_app.command("mostrar")
def cmd_inv_mostrar(contagem_id: str = typer.Argument(...), db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Mostra uma contagem e seus itens."""
    with _tratando_erros():
        c = inventario.obter_contagem(_razao(db_path), contagem_id)
    if as_json:
        _print_json(to_dict(c))
    else:
        _display_contagem(to_dict(c))


# -----------------------
# lotes
# -----------------------

def _lote(db_path: str, path: str, tipo: str, as_json: bool) -> None:
    with _tratando_erros():
        try:
            info = run_movimentacao_lote(_razao(db_path), path, tipo)
        except (OSError, ValueError) as e:
            console.print(Panel(str(e), title="Erro ao ler planilha", border_style="red"))
            raise typer.Exit(code=1)
    if as_json:
        _print_json(info)
        return
    console.print(Panel(
        f"Linhas lidas: {info['linhas_lidas']}\nRegistradas: {info['linhas_registradas']}\nFalhas: {len(info['falhas'])}",
        title=f"{tipo} em Lote",
    ))
    if info["falhas"]:
        _display_table(info["falhas"], ["linha", "sku", "erro", "mensagem"], title="Erros Encontrados")


@app.command("entrada-lotes")
def cmd_entrada_lotes(
    path: str = typer.Argument(..., help="Caminho do XLSX/CSV de ENTRADAS"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Registra entradas em lote a partir de uma planilha."""
    _lote(db_path, path, "ENTRADA", as_json)


@app.command("saida-lotes")
def cmd_saida_lotes(
    path: str = typer.Argument(..., help="Caminho do XLSX/CSV de SAÍDAS"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Registra saídas em lote a partir de uma planilha."""
    _lote(db_path, path, "SAIDA", as_json)


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios de estoque")
app.add_typer(rel_app, name="rel")


@rel_app.command("motivos")
def rel_motivos(
    de: Optional[str] = typer.Option(None, help="Data inicial (AAAA-MM-DD)"),
    ate: Optional[str] = typer.Option(None, help="Data final (AAAA-MM-DD)"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Saídas agrupadas por motivo no período."""
    with _tratando_erros():
        repo, _ = _contexto(db_path)
        if as_json:
            _print_json(resumo_saidas_por_motivo(repo, de, ate))
            return
        res = relatorio_saidas_por_motivo(repo, de, ate)
    _display_rel(res, title="Saídas por Motivo")


@app.command("logs")
def cmd_logs(
    tipo: str = typer.Argument("auditoria", help="transactions | movimentacoes | database | system | auditoria"),
    linhas: int = typer.Option(50, min=1, help="Últimas N linhas"),
):
    """Mostra as últimas linhas de um arquivo de log."""
    typer.echo(get_log_summary(tipo, lines=linhas))


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
