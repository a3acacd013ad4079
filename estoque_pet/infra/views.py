# estoque_pet/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_saldo_razao:      saldo reconstruído pelo replay do razão (saldo_inicial + Σ delta),
                       lado a lado com o saldo em cache do produto. Base da auditoria.
- vw_posicao_estoque:  produtos ativos com saldo, mínimo e validade (depuração/consultas ad hoc).

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            ---------------------------
            -- Replay do razão por produto
            ---------------------------
            DROP VIEW IF EXISTS vw_saldo_razao;
            CREATE VIEW vw_saldo_razao AS
            SELECT
                p.id                                            AS produto_id,
                p.sku                                           AS sku,
                p.saldo_inicial                                 AS saldo_inicial,
                p.estoque_atual                                 AS saldo_cache,
                p.saldo_inicial + COALESCE(SUM(m.quantidade_delta), 0.0) AS saldo_replay,
                COUNT(m.id)                                     AS movimentacoes,
                MAX(m.sequencia)                                AS ultima_sequencia
            FROM produto p
            LEFT JOIN movimentacao m ON m.produto_id = p.id
            GROUP BY p.id;

            ---------------------------
            -- Posição de estoque (produtos ativos)
            ---------------------------
            DROP VIEW IF EXISTS vw_posicao_estoque;
            CREATE VIEW vw_posicao_estoque AS
            SELECT
                id,
                sku,
                nome,
                unidade,
                estoque_atual,
                estoque_minimo,
                date(data_validade) AS data_validade,
                bloqueado
            FROM produto
            WHERE ativo = 1;
            """
        )
