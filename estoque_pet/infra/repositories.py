# estoque_pet/infra/repositories.py
"""
Repositórios para acesso e manipulação de dados.

Classes:
- RepositorioEstoque        (interface injetada no razão)
- SqliteRepositorioEstoque  (produto, movimentacao, contagem de inventário)
- PreferenciasRepo          (preferências K/V na tabela `params`)

A escrita de saldo acontece apenas em `aplicar_movimento`, que faz
leitura-modificação-escrita atômica: lê o produto, calcula a movimentação,
grava a linha do razão e atualiza o saldo em cache na mesma transação.
"""

from __future__ import annotations

import sqlite3
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .db import connect, transacao
from estoque_pet.config import DEFAULTS
from estoque_pet.domain.errors import (
    ConflictError,
    IntegrityError,
    ProductNotFound,
    ValidationError,
)
from estoque_pet.domain.models import (
    ContagemInventario,
    FiltroMovimentacoes,
    ItemContagem,
    MotivoSaida,
    Movimentacao,
    OrigemMovimento,
    PreferenciasEstoque,
    Produto,
    RascunhoMovimento,
    StatusContagem,
    TipoContagem,
    TipoMovimento,
    UnidadeMedida,
)
from estoque_pet.infra.logger import log_database_operation


MontarMovimento = Callable[[Produto], RascunhoMovimento]


# -------------------------
# Helpers
# -------------------------

def novo_id() -> str:
    return str(uuid.uuid4())


def _dt_iso(valor: Optional[datetime]) -> Optional[str]:
    if valor is None:
        return None
    return valor.isoformat(timespec="microseconds")


def _dt_parse(valor: Optional[str]) -> Optional[datetime]:
    if not valor:
        return None
    return datetime.fromisoformat(str(valor))


def _date_parse(valor: Optional[str]) -> Optional[date]:
    if not valor:
        return None
    return date.fromisoformat(str(valor)[:10])


def _to_bool01(val: Any) -> Optional[int]:
    if val is None:
        return None
    s = str(val).strip().lower()
    if s in {"1", "true", "t", "sim", "s", "y", "yes"}:
        return 1
    if s in {"0", "false", "f", "nao", "não", "n", "no"}:
        return 0
    try:
        i = int(float(s))
        if i in (0, 1):
            return i
    except ValueError:
        pass
    return None


def proximo_instante(agora: datetime, ultimo: Optional[datetime]) -> datetime:
    """Garante datas estritamente crescentes por produto."""
    if ultimo is not None and agora <= ultimo:
        return ultimo + timedelta(microseconds=1)
    return agora


def verificar_gravavel(produto: Optional[Produto], produto_id: str, versao_esperada: Optional[int]) -> Produto:
    """Checagens feitas sob o lock, antes de calcular a movimentação."""
    if produto is None or not produto.ativo:
        raise ProductNotFound(produto_id)
    if produto.bloqueado:
        raise IntegrityError(
            "Produto bloqueado por divergência entre saldo e razão; reconcilie manualmente",
            produto_id=produto_id,
        )
    if versao_esperada is not None and int(versao_esperada) != produto.versao:
        raise ConflictError(
            "O estoque deste produto mudou; atualize e tente novamente",
            produto_id=produto_id,
            versao_esperada=int(versao_esperada),
            versao_atual=produto.versao,
        )
    return produto


def construir_movimentacao(
    produto: Produto,
    rascunho: RascunhoMovimento,
    sequencia: int,
    data: datetime,
) -> Tuple[Movimentacao, Produto]:
    """Monta a linha do razão e o produto resultante (ainda não persistidos)."""
    saldo_anterior = float(produto.estoque_atual)
    saldo_resultante = saldo_anterior + float(rascunho.quantidade_delta)
    minimo_anterior = produto.estoque_minimo
    novo_minimo = produto.estoque_minimo
    if rascunho.novo_minimo is not None:
        novo_minimo = float(rascunho.novo_minimo)

    mov = Movimentacao(
        id=novo_id(),
        produto_id=produto.id,
        sequencia=sequencia,
        tipo=rascunho.tipo,
        data=data,
        quantidade_delta=float(rascunho.quantidade_delta),
        saldo_anterior=saldo_anterior,
        saldo_resultante=saldo_resultante,
        sku=produto.sku,
        nome_produto=produto.nome,
        quantidade=rascunho.quantidade,
        custo_unitario=rascunho.custo_unitario,
        motivo=rascunho.motivo,
        motivo_detalhe=rascunho.motivo_detalhe,
        origem=rascunho.origem,
        documento=rascunho.documento,
        observacao=rascunho.observacao,
        usuario=rascunho.usuario,
        estoque_minimo_anterior=minimo_anterior if rascunho.novo_minimo is not None else None,
        estoque_minimo_novo=novo_minimo if rascunho.novo_minimo is not None else None,
    )
    atualizado = replace(
        produto,
        estoque_atual=saldo_resultante,
        estoque_minimo=novo_minimo,
        versao=produto.versao + 1,
    )
    return mov, atualizado


def filtrar_movimentacao(m: Movimentacao, filtro: FiltroMovimentacoes) -> bool:
    """Versão em Python do WHERE de `listar_movimentacoes` (repositório em memória)."""
    if filtro.produto_id and m.produto_id != filtro.produto_id:
        return False
    if filtro.tipo and m.tipo != TipoMovimento(filtro.tipo):
        return False
    if filtro.data_inicio and m.data < filtro.data_inicio:
        return False
    if filtro.data_fim and m.data > filtro.data_fim:
        return False
    if filtro.texto:
        t = filtro.texto.strip().casefold()
        campos = (m.nome_produto or "", m.sku or "", m.documento or "")
        if t and not any(t in c.casefold() for c in campos):
            return False
    return True


# -------------------------
# Interface
# -------------------------

class RepositorioEstoque(ABC):
    """Armazenamento do razão com leitura-modificação-escrita atômica por produto."""

    relogio: Callable[[], datetime]

    # --- produtos ---
    @abstractmethod
    def obter_produto(self, produto_id: str) -> Optional[Produto]: ...

    @abstractmethod
    def obter_produto_por_sku(self, sku: str) -> Optional[Produto]: ...

    @abstractmethod
    def listar_produtos(self, incluir_inativos: bool = False) -> List[Produto]: ...

    @abstractmethod
    def inserir_produto(self, produto: Produto) -> Produto: ...

    @abstractmethod
    def definir_ativo(self, produto_id: str, ativo: bool) -> Produto: ...

    @abstractmethod
    def remover_produto(self, produto_id: str) -> None: ...

    @abstractmethod
    def definir_bloqueio(
        self, produto_id: str, bloqueado: bool, versao_esperada: Optional[int] = None
    ) -> Produto:
        """Com `versao_esperada`, só grava se a versão não mudou (senão ConflictError)."""

    @abstractmethod
    def reconciliar_saldo_cache(self, produto_id: str, saldo: float) -> Produto: ...

    # --- razão ---
    @abstractmethod
    def aplicar_movimento(
        self,
        produto_id: str,
        montar: MontarMovimento,
        versao_esperada: Optional[int] = None,
    ) -> Tuple[Movimentacao, Produto]: ...

    @abstractmethod
    def listar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None) -> List[Movimentacao]: ...

    @abstractmethod
    def contar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None) -> int: ...

    @abstractmethod
    def retrato_razao(self, produto_id: str) -> Tuple[Optional[Produto], List[Movimentacao]]:
        """Produto e suas movimentações (em ordem de sequência) lidos no mesmo instante."""

    def tem_movimentacoes(self, produto_id: str) -> bool:
        return self.contar_movimentacoes(FiltroMovimentacoes(produto_id=produto_id)) > 0

    # --- contagens de inventário ---
    @abstractmethod
    def salvar_contagem(self, contagem: ContagemInventario) -> None: ...

    @abstractmethod
    def obter_contagem(self, contagem_id: str) -> Optional[ContagemInventario]: ...

    @abstractmethod
    def listar_contagens(self) -> List[ContagemInventario]: ...


# -------------------------
# Conversões de linhas
# -------------------------

_PRODUTO_COLS = (
    "id, sku, nome, unidade, ativo, estoque_minimo, data_validade, estoque_atual, "
    "saldo_inicial, versao, bloqueado, criado_em"
)

_MOV_COLS = (
    "id, produto_id, sequencia, tipo, data, quantidade_delta, saldo_anterior, saldo_resultante, "
    "sku, nome_produto, quantidade, custo_unitario, motivo, motivo_detalhe, origem, documento, "
    "observacao, usuario, estoque_minimo_anterior, estoque_minimo_novo"
)


def _produto_de_row(row: sqlite3.Row) -> Produto:
    return Produto(
        id=row["id"],
        sku=row["sku"],
        nome=row["nome"],
        unidade=UnidadeMedida(row["unidade"] or "UN"),
        ativo=bool(row["ativo"]),
        estoque_minimo=row["estoque_minimo"],
        data_validade=_date_parse(row["data_validade"]),
        estoque_atual=float(row["estoque_atual"] or 0.0),
        saldo_inicial=float(row["saldo_inicial"] or 0.0),
        versao=int(row["versao"] or 0),
        bloqueado=bool(row["bloqueado"]),
        criado_em=_dt_parse(row["criado_em"]),
    )


def _mov_de_row(row: sqlite3.Row) -> Movimentacao:
    return Movimentacao(
        id=row["id"],
        produto_id=row["produto_id"],
        sequencia=int(row["sequencia"]),
        tipo=TipoMovimento(row["tipo"]),
        data=_dt_parse(row["data"]),
        quantidade_delta=float(row["quantidade_delta"]),
        saldo_anterior=float(row["saldo_anterior"]),
        saldo_resultante=float(row["saldo_resultante"]),
        sku=row["sku"] or "",
        nome_produto=row["nome_produto"] or "",
        quantidade=row["quantidade"],
        custo_unitario=row["custo_unitario"],
        motivo=MotivoSaida(row["motivo"]) if row["motivo"] else None,
        motivo_detalhe=row["motivo_detalhe"],
        origem=OrigemMovimento(row["origem"]) if row["origem"] else None,
        documento=row["documento"],
        observacao=row["observacao"],
        usuario=row["usuario"],
        estoque_minimo_anterior=row["estoque_minimo_anterior"],
        estoque_minimo_novo=row["estoque_minimo_novo"],
    )


def _mov_para_row(m: Movimentacao) -> Dict[str, Any]:
    return {
        "id": m.id,
        "produto_id": m.produto_id,
        "sequencia": m.sequencia,
        "tipo": m.tipo.value,
        "data": _dt_iso(m.data),
        "quantidade_delta": m.quantidade_delta,
        "saldo_anterior": m.saldo_anterior,
        "saldo_resultante": m.saldo_resultante,
        "sku": m.sku,
        "nome_produto": m.nome_produto,
        "quantidade": m.quantidade,
        "custo_unitario": m.custo_unitario,
        "motivo": m.motivo.value if m.motivo else None,
        "motivo_detalhe": m.motivo_detalhe,
        "origem": m.origem.value if m.origem else None,
        "documento": m.documento,
        "observacao": m.observacao,
        "usuario": m.usuario,
        "estoque_minimo_anterior": m.estoque_minimo_anterior,
        "estoque_minimo_novo": m.estoque_minimo_novo,
    }


def _where_movimentacoes(filtro: Optional[FiltroMovimentacoes]) -> Tuple[str, Dict[str, Any]]:
    filtro = filtro or FiltroMovimentacoes()
    clauses: List[str] = []
    params: Dict[str, Any] = {}
    if filtro.produto_id:
        clauses.append("produto_id = :produto_id")
        params["produto_id"] = filtro.produto_id
    if filtro.tipo:
        clauses.append("tipo = :tipo")
        params["tipo"] = TipoMovimento(filtro.tipo).value
    if filtro.data_inicio:
        clauses.append("data >= :data_inicio")
        params["data_inicio"] = _dt_iso(filtro.data_inicio)
    if filtro.data_fim:
        clauses.append("data <= :data_fim")
        params["data_fim"] = _dt_iso(filtro.data_fim)
    if filtro.texto and filtro.texto.strip():
        # py_casefold: LOWER() do SQLite não trata acentos
        clauses.append(
            "(INSTR(py_casefold(nome_produto), :texto) > 0"
            " OR INSTR(py_casefold(sku), :texto) > 0"
            " OR INSTR(py_casefold(documento), :texto) > 0)"
        )
        params["texto"] = filtro.texto.strip().casefold()
    where = ("WHERE " + " AND ".join(clauses)) if clauses else ""
    return where, params


def _casefold(valor: Optional[str]) -> str:
    return (valor or "").casefold()


# -------------------------
# SQLite
# -------------------------

class SqliteRepositorioEstoque(RepositorioEstoque):
    def __init__(
        self,
        db_path: str,
        relogio: Callable[[], datetime] = datetime.now,
        timeout: float = DEFAULTS.timeout_bloqueio_s,
    ):
        self.db_path = db_path
        self.relogio = relogio
        self.timeout = timeout

    # ---- produtos ----

    def obter_produto(self, produto_id: str) -> Optional[Produto]:
        with connect(self.db_path) as c:
            row = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto WHERE id = ?", (produto_id,)).fetchone()
            return _produto_de_row(row) if row else None

    def obter_produto_por_sku(self, sku: str) -> Optional[Produto]:
        with connect(self.db_path) as c:
            row = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto WHERE sku = ?", (sku,)).fetchone()
            return _produto_de_row(row) if row else None

    def listar_produtos(self, incluir_inativos: bool = False) -> List[Produto]:
        sql = f"SELECT {_PRODUTO_COLS} FROM produto"
        if not incluir_inativos:
            sql += " WHERE ativo = 1"
        sql += " ORDER BY nome, sku"
        with connect(self.db_path) as c:
            return [_produto_de_row(r) for r in c.execute(sql).fetchall()]

    def inserir_produto(self, produto: Produto) -> Produto:
        row = {
            "id": produto.id,
            "sku": produto.sku,
            "nome": produto.nome,
            "unidade": UnidadeMedida(produto.unidade).value,
            "ativo": 1 if produto.ativo else 0,
            "estoque_minimo": produto.estoque_minimo,
            "data_validade": produto.data_validade.isoformat() if produto.data_validade else None,
            "estoque_atual": produto.estoque_atual,
            "saldo_inicial": produto.saldo_inicial,
            "versao": produto.versao,
            "bloqueado": 1 if produto.bloqueado else 0,
            "criado_em": _dt_iso(produto.criado_em),
        }
        try:
            with connect(self.db_path) as c:
                c.execute(
                    f"""
                    INSERT INTO produto ({_PRODUTO_COLS})
                    VALUES (:id, :sku, :nome, :unidade, :ativo, :estoque_minimo, :data_validade,
                            :estoque_atual, :saldo_inicial, :versao, :bloqueado, :criado_em)
                    """,
                    row,
                )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Produto duplicado (id ou SKU já cadastrado): {produto.sku}", sku=produto.sku) from e
        log_database_operation("produto", "INSERT", 1, produto_id=produto.id, sku=produto.sku)
        return produto

    def _atualizar_flag(
        self, produto_id: str, coluna: str, valor: int, versao_esperada: Optional[int] = None
    ) -> Produto:
        sql = f"UPDATE produto SET {coluna} = ? WHERE id = ?"
        params: Tuple[Any, ...] = (valor, produto_id)
        if versao_esperada is not None:
            sql += " AND versao = ?"
            params += (int(versao_esperada),)
        with transacao(self.db_path, timeout=self.timeout) as c:
            cur = c.execute(sql, params)
            row = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto WHERE id = ?", (produto_id,)).fetchone()
            if row is None:
                raise ProductNotFound(produto_id)
            if cur.rowcount != 1:
                raise ConflictError(
                    "O estoque deste produto mudou; atualize e tente novamente",
                    produto_id=produto_id,
                    versao_esperada=versao_esperada,
                    versao_atual=int(row["versao"]),
                )
        log_database_operation("produto", "UPDATE", 1, produto_id=produto_id, coluna=coluna, valor=valor)
        return _produto_de_row(row)

    def definir_ativo(self, produto_id: str, ativo: bool) -> Produto:
        return self._atualizar_flag(produto_id, "ativo", 1 if ativo else 0)

    def definir_bloqueio(
        self, produto_id: str, bloqueado: bool, versao_esperada: Optional[int] = None
    ) -> Produto:
        return self._atualizar_flag(produto_id, "bloqueado", 1 if bloqueado else 0, versao_esperada)

    def remover_produto(self, produto_id: str) -> None:
        with transacao(self.db_path, timeout=self.timeout) as c:
            tem = c.execute("SELECT 1 FROM movimentacao WHERE produto_id = ? LIMIT 1", (produto_id,)).fetchone()
            if tem:
                raise ValidationError("Produto com histórico no razão não pode ser removido; desative-o", produto_id=produto_id)
            c.execute("DELETE FROM contagem_item WHERE produto_id = ?", (produto_id,))
            cur = c.execute("DELETE FROM produto WHERE id = ?", (produto_id,))
            if cur.rowcount != 1:
                raise ProductNotFound(produto_id)
        log_database_operation("produto", "DELETE", 1, produto_id=produto_id)

    def reconciliar_saldo_cache(self, produto_id: str, saldo: float) -> Produto:
        with transacao(self.db_path, timeout=self.timeout) as c:
            cur = c.execute(
                "UPDATE produto SET estoque_atual = ?, bloqueado = 0, versao = versao + 1 WHERE id = ?",
                (float(saldo), produto_id),
            )
            if cur.rowcount != 1:
                raise ProductNotFound(produto_id)
            row = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto WHERE id = ?", (produto_id,)).fetchone()
        log_database_operation("produto", "RECONCILE", 1, produto_id=produto_id, saldo=saldo)
        return _produto_de_row(row)

    # ---- razão ----

    def aplicar_movimento(
        self,
        produto_id: str,
        montar: MontarMovimento,
        versao_esperada: Optional[int] = None,
    ) -> Tuple[Movimentacao, Produto]:
        try:
            with transacao(self.db_path, timeout=self.timeout) as c:
                row = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto WHERE id = ?", (produto_id,)).fetchone()
                produto = verificar_gravavel(_produto_de_row(row) if row else None, produto_id, versao_esperada)
                rascunho = montar(produto)

                ultimo = c.execute(
                    "SELECT sequencia, data FROM movimentacao WHERE produto_id = ? ORDER BY sequencia DESC LIMIT 1",
                    (produto_id,),
                ).fetchone()
                sequencia = (int(ultimo["sequencia"]) if ultimo else 0) + 1
                data = proximo_instante(self.relogio(), _dt_parse(ultimo["data"]) if ultimo else None)
                mov, atualizado = construir_movimentacao(produto, rascunho, sequencia, data)

                cur = c.execute(
                    """
                    UPDATE produto
                       SET estoque_atual = estoque_atual + :delta,
                           estoque_minimo = :estoque_minimo,
                           versao = versao + 1
                     WHERE id = :id AND versao = :versao
                    """,
                    {
                        "delta": mov.quantidade_delta,
                        "estoque_minimo": atualizado.estoque_minimo,
                        "id": produto_id,
                        "versao": produto.versao,
                    },
                )
                if cur.rowcount != 1:
                    raise ConflictError(
                        "O estoque deste produto mudou; atualize e tente novamente",
                        produto_id=produto_id,
                    )
                c.execute(
                    f"""
                    INSERT INTO movimentacao ({_MOV_COLS})
                    VALUES (:id, :produto_id, :sequencia, :tipo, :data, :quantidade_delta,
                            :saldo_anterior, :saldo_resultante, :sku, :nome_produto, :quantidade,
                            :custo_unitario, :motivo, :motivo_detalhe, :origem, :documento,
                            :observacao, :usuario, :estoque_minimo_anterior, :estoque_minimo_novo)
                    """,
                    _mov_para_row(mov),
                )
        except sqlite3.OperationalError as e:
            msg = str(e).lower()
            if "locked" in msg or "busy" in msg:
                raise ConflictError(
                    "Outro terminal está gravando; atualize o saldo e tente novamente",
                    produto_id=produto_id,
                ) from e
            raise
        except sqlite3.IntegrityError as e:
            # UNIQUE(produto_id, sequencia): outro escritor ganhou a corrida
            raise ConflictError("Movimentação concorrente detectada", produto_id=produto_id) from e

        log_database_operation("movimentacao", "INSERT", 1, produto_id=produto_id, sequencia=mov.sequencia)
        return mov, atualizado

    def _conectar_leitura(self, c: sqlite3.Connection) -> None:
        c.create_function("py_casefold", 1, _casefold, deterministic=True)

    def listar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None) -> List[Movimentacao]:
        filtro = filtro or FiltroMovimentacoes()
        where, params = _where_movimentacoes(filtro)
        sql = f"SELECT {_MOV_COLS} FROM movimentacao {where} ORDER BY data ASC, sequencia ASC"
        if filtro.limite is not None or filtro.deslocamento:
            sql += " LIMIT :limite OFFSET :deslocamento"
            params["limite"] = int(filtro.limite) if filtro.limite is not None else -1
            params["deslocamento"] = int(filtro.deslocamento or 0)
        with connect(self.db_path) as c:
            self._conectar_leitura(c)
            return [_mov_de_row(r) for r in c.execute(sql, params).fetchall()]

    def contar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None) -> int:
        where, params = _where_movimentacoes(filtro)
        with connect(self.db_path) as c:
            self._conectar_leitura(c)
            return int(c.execute(f"SELECT COUNT(*) FROM movimentacao {where}", params).fetchone()[0])

    def retrato_razao(self, produto_id: str) -> Tuple[Optional[Produto], List[Movimentacao]]:
        # uma única transação de leitura: o WAL entrega o mesmo commit às duas consultas
        with transacao(self.db_path, timeout=self.timeout, modo="DEFERRED") as c:
            row = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto WHERE id = ?", (produto_id,)).fetchone()
            if row is None:
                return None, []
            movs = c.execute(
                f"SELECT {_MOV_COLS} FROM movimentacao WHERE produto_id = ? ORDER BY sequencia ASC",
                (produto_id,),
            ).fetchall()
            return _produto_de_row(row), [_mov_de_row(r) for r in movs]

    def saldos_razao(self) -> List[Dict[str, Any]]:
        """Replay agregado de todos os produtos (view `vw_saldo_razao`)."""
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT produto_id, sku, saldo_inicial, saldo_cache, saldo_replay, movimentacoes FROM vw_saldo_razao"
            )
            cols = [d[0] for d in cur.description]
            return [dict(zip(cols, row)) for row in cur.fetchall()]

    # ---- contagens ----

    def salvar_contagem(self, contagem: ContagemInventario) -> None:
        with transacao(self.db_path, timeout=self.timeout) as c:
            c.execute(
                """
                INSERT INTO contagem_inventario (id, tipo, status, criado_em, finalizada_em, observacao)
                VALUES (:id, :tipo, :status, :criado_em, :finalizada_em, :observacao)
                ON CONFLICT(id) DO UPDATE SET
                    status=excluded.status,
                    finalizada_em=excluded.finalizada_em,
                    observacao=excluded.observacao
                """,
                {
                    "id": contagem.id,
                    "tipo": contagem.tipo.value,
                    "status": contagem.status.value,
                    "criado_em": _dt_iso(contagem.criado_em),
                    "finalizada_em": _dt_iso(contagem.finalizada_em),
                    "observacao": contagem.observacao,
                },
            )
            c.execute("DELETE FROM contagem_item WHERE contagem_id = ?", (contagem.id,))
            c.executemany(
                """
                INSERT INTO contagem_item (contagem_id, produto_id, sku, nome, sistema_na_abertura, contagem)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (contagem.id, i.produto_id, i.sku, i.nome, i.sistema_na_abertura, i.contagem)
                    for i in contagem.itens
                ],
            )
        log_database_operation("contagem_inventario", "UPSERT", 1, contagem_id=contagem.id, itens=len(contagem.itens))

    def _contagem_de_rows(self, c: sqlite3.Connection, row: sqlite3.Row) -> ContagemInventario:
        itens = [
            ItemContagem(
                produto_id=r["produto_id"],
                sku=r["sku"],
                nome=r["nome"],
                sistema_na_abertura=float(r["sistema_na_abertura"]),
                contagem=r["contagem"],
            )
            for r in c.execute(
                "SELECT produto_id, sku, nome, sistema_na_abertura, contagem FROM contagem_item "
                "WHERE contagem_id = ? ORDER BY nome, sku",
                (row["id"],),
            ).fetchall()
        ]
        return ContagemInventario(
            id=row["id"],
            tipo=TipoContagem(row["tipo"]),
            status=StatusContagem(row["status"]),
            criado_em=_dt_parse(row["criado_em"]),
            finalizada_em=_dt_parse(row["finalizada_em"]),
            observacao=row["observacao"],
            itens=itens,
        )

    def obter_contagem(self, contagem_id: str) -> Optional[ContagemInventario]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT * FROM contagem_inventario WHERE id = ?", (contagem_id,)).fetchone()
            return self._contagem_de_rows(c, row) if row else None

    def listar_contagens(self) -> List[ContagemInventario]:
        with connect(self.db_path) as c:
            rows = c.execute("SELECT * FROM contagem_inventario ORDER BY criado_em DESC").fetchall()
            return [self._contagem_de_rows(c, r) for r in rows]


# -------------------------
# Preferências
# -------------------------

class PreferenciasRepo:
    """Preferências do tenant na tabela `params` (chave/valor)."""

    CHAVES = ("considerar_validade", "estoque_minimo_padrao", "dias_alerta_validade", "permitir_estoque_negativo")

    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: Optional[float]) -> Optional[float]:
        v = self.get(key, None)
        if v is None:
            return default
        if str(v).strip().lower() in {"", "none", "null"}:
            return None
        try:
            return float(v)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        v = _to_bool01(self.get(key, None))
        return default if v is None else bool(v)

    def carregar(self) -> PreferenciasEstoque:
        """Preferências efetivas, com fallback para DEFAULTS."""
        dias = self.get_float("dias_alerta_validade", float(DEFAULTS.dias_alerta_validade))
        return PreferenciasEstoque(
            considerar_validade=self.get_bool("considerar_validade", DEFAULTS.considerar_validade),
            estoque_minimo_padrao=self.get_float("estoque_minimo_padrao", DEFAULTS.estoque_minimo_padrao),
            dias_alerta_validade=int(dias if dias is not None else DEFAULTS.dias_alerta_validade),
            permitir_estoque_negativo=self.get_bool("permitir_estoque_negativo", DEFAULTS.permitir_estoque_negativo),
        )

    def salvar(self, prefs: PreferenciasEstoque) -> None:
        self.set_many([
            ("considerar_validade", "1" if prefs.considerar_validade else "0"),
            ("estoque_minimo_padrao", "" if prefs.estoque_minimo_padrao is None else str(prefs.estoque_minimo_padrao)),
            ("dias_alerta_validade", str(int(prefs.dias_alerta_validade))),
            ("permitir_estoque_negativo", "1" if prefs.permitir_estoque_negativo else "0"),
        ])
