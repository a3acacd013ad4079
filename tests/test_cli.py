import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from estoque_pet.adapters.cli import app
from estoque_pet.infra.db import connect

runner = CliRunner()


def _db(tmp_path: Path) -> str:
    db_path = str(tmp_path / "estoque_test.sqlite")
    result = runner.invoke(app, ["migrate", "--db", db_path])
    assert result.exit_code == 0, result.output
    return db_path


def _cadastrar(db_path, sku="RAC-15", nome="Ração Premium 15kg", *extra):
    result = runner.invoke(app, ["produto", "cadastrar", sku, nome, "--db", db_path, "--json", *extra])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_cli_prefs_set_get_show(tmp_path: Path):
    db_path = _db(tmp_path)

    result = runner.invoke(app, ["prefs", "show", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["estoque_minimo_padrao"] == 10.0
    assert data["dias_alerta_validade"] == 30

    result = runner.invoke(
        app,
        ["prefs", "set", "--db", db_path, "--dias-alerta-validade", "45", "--permitir-negativo", "--ignorar-validade"],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["prefs", "get", "dias_alerta_validade", "--db", db_path])
    assert result.exit_code == 0
    assert result.stdout.strip() == "45"

    data = json.loads(runner.invoke(app, ["prefs", "show", "--db", db_path, "--json"]).stdout)
    assert data["permitir_estoque_negativo"] is True
    assert data["considerar_validade"] is False

    result = runner.invoke(app, ["prefs", "set", "--db", db_path])
    assert result.exit_code == 1


def test_cli_movimentacoes_fluxo(tmp_path: Path):
    db_path = _db(tmp_path)
    produto = _cadastrar(db_path, "RAC-15", "Ração Premium 15kg", "--saldo-inicial", "50", "--minimo", "10")
    assert produto["estoque_atual"] == 50

    result = runner.invoke(app, ["entrada", "RAC-15", "20", "--custo", "5,00", "--documento", "NF-1", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["product"]["estoque_atual"] == 70

    result = runner.invoke(app, ["saida", "RAC-15", "65", "--motivo", "Venda", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["product"]["estoque_atual"] == 5

    result = runner.invoke(app, ["ajuste", "RAC-15", "--saldo", "0", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    dados = json.loads(result.stdout)
    assert dados["movement"]["quantidade_delta"] == -5
    assert dados["product"]["versao"] == 3

    result = runner.invoke(app, ["movimentacoes", "--produto", "RAC-15", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    dados = json.loads(result.stdout)
    assert dados["total"] == 3
    assert [m["tipo"] for m in dados["itens"]] == ["ENTRADA", "SAIDA", "AJUSTE"]

    result = runner.invoke(app, ["movimentacoes", "--q", "nf-1", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["posicao", "--filtro", "out-of-stock", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    assert [i["sku"] for i in json.loads(result.stdout)] == ["RAC-15"]


def test_cli_erros_tem_codigos_de_saida(tmp_path: Path):
    db_path = _db(tmp_path)
    _cadastrar(db_path, "SHP-01", "Shampoo", "--saldo-inicial", "2")

    result = runner.invoke(app, ["saida", "SHP-01", "3", "--db", db_path])
    assert result.exit_code == 2
    assert "insufficient_stock" in result.stdout

    result = runner.invoke(app, ["entrada", "SHP-01", "0", "--db", db_path])
    assert result.exit_code == 1

    result = runner.invoke(app, ["ajuste", "SHP-01", "--db", db_path])
    assert result.exit_code == 1
    assert "no_operation_selected" in result.stdout

    result = runner.invoke(app, ["entrada", "NAO-EXISTE", "1", "--db", db_path])
    assert result.exit_code == 1

    result = runner.invoke(app, ["entrada", "SHP-01", "1", "--versao", "9", "--db", db_path])
    assert result.exit_code == 2


def test_cli_verificar_e_reconciliar(tmp_path: Path):
    db_path = _db(tmp_path)
    _cadastrar(db_path, "VAC-01", "Vacina", "--saldo-inicial", "5")
    runner.invoke(app, ["entrada", "VAC-01", "5", "--db", db_path])

    result = runner.invoke(app, ["verificar", "--db", db_path])
    assert result.exit_code == 0, result.output

    with connect(db_path) as c:
        c.execute("UPDATE produto SET estoque_atual = 99 WHERE sku = 'VAC-01'")

    result = runner.invoke(app, ["verificar", "--db", db_path, "--json"])
    assert result.exit_code == 3
    divergencias = json.loads(result.stdout)
    assert divergencias[0]["saldo_replay"] == 10

    result = runner.invoke(app, ["entrada", "VAC-01", "1", "--db", db_path])
    assert result.exit_code == 3

    result = runner.invoke(app, ["logs", "auditoria", "--linhas", "20"])
    assert result.exit_code == 0
    assert "AUDIT_DIVERGENCIA" in result.stdout

    result = runner.invoke(app, ["reconciliar", "VAC-01", "--db", db_path])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["entrada", "VAC-01", "1", "--db", db_path, "--json"])
    assert json.loads(result.stdout)["product"]["estoque_atual"] == 11


def test_cli_inventario(tmp_path: Path):
    db_path = _db(tmp_path)
    _cadastrar(db_path, "COL-P", "Coleira P", "--saldo-inicial", "10")

    result = runner.invoke(app, ["inventario", "abrir", "--tipo", "PARCIAL", "--produto", "COL-P", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    contagem_id = json.loads(result.stdout)["id"]

    result = runner.invoke(app, ["inventario", "contar", contagem_id, "COL-P", "7", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["inventario", "finalizar", contagem_id, "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    res = json.loads(result.stdout)
    assert res["contagem"]["status"] == "FINALIZADA"
    assert res["ajustes"][0]["observacao"] == "Inventário PARCIAL - Ajuste: -3"

    result = runner.invoke(app, ["inventario", "cancelar", contagem_id, "--db", db_path])
    assert result.exit_code == 1


def test_cli_entrada_lotes_e_relatorios(tmp_path: Path):
    db_path = _db(tmp_path)
    _cadastrar(db_path, "RAC-15", "Ração", "--minimo", "5")

    planilha = tmp_path / "entradas.xlsx"
    pd.DataFrame({"SKU": ["RAC-15", "XXX"], "Quantidade": ["10 UN - Unidade", "1"]}).to_excel(planilha, index=False)
    result = runner.invoke(app, ["entrada-lotes", str(planilha), "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    info = json.loads(result.stdout)
    assert info["linhas_registradas"] == 1
    assert info["falhas"][0]["erro"] == "product_not_found"

    runner.invoke(app, ["saida", "RAC-15", "7", "--motivo", "perda", "--db", db_path])

    result = runner.invoke(app, ["alertas", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    assert [a["tipo"] for a in json.loads(result.stdout)] == ["ABAIXO_MINIMO"]

    result = runner.invoke(app, ["rel", "motivos", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)[0]["motivo"] == "PERDA"

    result = runner.invoke(app, ["entrada-lotes", str(tmp_path / "nao_existe.xlsx"), "--db", db_path])
    assert result.exit_code == 1


def test_cli_produto_excluir(tmp_path: Path):
    db_path = _db(tmp_path)
    _cadastrar(db_path, "SKU-1", "Sem histórico")
    _cadastrar(db_path, "SKU-2", "Com histórico")
    runner.invoke(app, ["entrada", "SKU-2", "1", "--db", db_path])

    result = runner.invoke(app, ["produto", "excluir", "SKU-1", "--db", db_path])
    assert "removido" in result.stdout
    result = runner.invoke(app, ["produto", "excluir", "SKU-2", "--db", db_path])
    assert "desativado" in result.stdout

    result = runner.invoke(app, ["produto", "listar", "--todos", "--db", db_path, "--json"])
    assert [p["sku"] for p in json.loads(result.stdout)] == ["SKU-2"]
