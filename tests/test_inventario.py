import pytest

from estoque_pet.domain.errors import InvalidQuantity, NotFoundError, ProductNotFound, ValidationError
from estoque_pet.domain.models import OrigemMovimento, StatusContagem, TipoContagem, TipoMovimento
from estoque_pet.usecases.inventario import (
    abrir_contagem,
    cancelar_contagem,
    finalizar_contagem,
    obter_contagem,
    registrar_contagem,
)
from estoque_pet.usecases.razao import Razao


@pytest.fixture
def razao(repo):
    return Razao(repo)


def _produtos(razao):
    a = razao.cadastrar_produto("COL-P", "Coleira P", saldo_inicial=10)
    b = razao.cadastrar_produto("COL-M", "Coleira M", saldo_inicial=5)
    c = razao.cadastrar_produto("COL-G", "Coleira G", saldo_inicial=7)
    return a, b, c


def test_abrir_fotografa_saldo_dos_ativos(razao):
    a, b, c = _produtos(razao)
    razao.desativar_produto(c.id)
    contagem = abrir_contagem(razao, "cega", observacao="Balanço de março")
    assert contagem.tipo is TipoContagem.CEGA
    assert contagem.status is StatusContagem.ABERTA
    assert {i.produto_id: i.sistema_na_abertura for i in contagem.itens} == {a.id: 10, b.id: 5}
    assert obter_contagem(razao, contagem.id).observacao == "Balanço de março"


def test_abrir_parcial_com_produtos_selecionados(razao):
    a, b, _ = _produtos(razao)
    contagem = abrir_contagem(razao, TipoContagem.PARCIAL, produto_ids=[b.id])
    assert [i.produto_id for i in contagem.itens] == [b.id]
    assert abrir_contagem(razao).tipo is TipoContagem.CEGA
    with pytest.raises(ProductNotFound):
        abrir_contagem(razao, "PARCIAL", produto_ids=["nao-existe"])
    with pytest.raises(ValidationError):
        abrir_contagem(razao, "ROTATIVA")


def test_finalizar_gera_ajustes_somente_para_diferencas(razao):
    a, b, c = _produtos(razao)
    contagem = abrir_contagem(razao, "CEGA")
    registrar_contagem(razao, contagem.id, a.id, 8)
    registrar_contagem(razao, contagem.id, b.id, 5)
    assert obter_contagem(razao, contagem.id).status is StatusContagem.EM_CONTAGEM

    resultado = finalizar_contagem(razao, contagem.id, usuario="ana")
    assert resultado["falhas"] == []
    assert len(resultado["ajustes"]) == 1
    ajuste = resultado["ajustes"][0]
    assert ajuste["produto_id"] == a.id
    assert ajuste["quantidade_delta"] == -2
    assert ajuste["documento"] == f"INV-{contagem.id}"
    assert ajuste["observacao"] == "Inventário CEGA - Ajuste: -2"
    assert ajuste["usuario"] == "ana"
    assert resultado["contagem"]["status"] == "FINALIZADA"

    movs = razao.listar_movimentacoes(produto_id=a.id)
    assert [(m.tipo, m.origem) for m in movs] == [(TipoMovimento.AJUSTE, OrigemMovimento.INVENTARIO)]
    assert razao.repo.obter_produto(a.id).estoque_atual == 8
    # sem contagem (c) ou sem diferença (b): saldo intacto, nenhum registro
    assert razao.contar_movimentacoes(produto_id=b.id) == 0
    assert razao.contar_movimentacoes(produto_id=c.id) == 0

    f = obter_contagem(razao, contagem.id)
    assert f.status is StatusContagem.FINALIZADA
    assert f.finalizada_em is not None


def test_finalizar_com_falha_mantem_contagem_aberta_e_e_reexecutavel(razao, repo, corromper):
    from estoque_pet.usecases.verificar_estoque import reconciliar_produto, run_verificar

    a, b, _ = _produtos(razao)
    contagem = abrir_contagem(razao, "CEGA")
    registrar_contagem(razao, contagem.id, a.id, 12)
    registrar_contagem(razao, contagem.id, b.id, 1)

    corromper(repo, b.id, 50)
    run_verificar(repo)

    resultado = finalizar_contagem(razao, contagem.id)
    assert [f["produto_id"] for f in resultado["falhas"]] == [b.id]
    assert resultado["falhas"][0]["erro"] == "integrity"
    assert len(resultado["ajustes"]) == 1
    assert obter_contagem(razao, contagem.id).status is StatusContagem.EM_CONTAGEM

    reconciliar_produto(repo, b.id)
    resultado = finalizar_contagem(razao, contagem.id)
    assert resultado["falhas"] == []
    assert [m["produto_id"] for m in resultado["ajustes"]] == [b.id]
    assert razao.contar_movimentacoes(produto_id=a.id) == 1
    assert repo.obter_produto(a.id).estoque_atual == 12
    assert repo.obter_produto(b.id).estoque_atual == 1


def test_contagem_invalida_ou_produto_fora_do_inventario(razao):
    a, b, _ = _produtos(razao)
    contagem = abrir_contagem(razao, "PARCIAL", produto_ids=[a.id])
    with pytest.raises(InvalidQuantity):
        registrar_contagem(razao, contagem.id, a.id, -1)
    with pytest.raises(ProductNotFound):
        registrar_contagem(razao, contagem.id, b.id, 3)
    with pytest.raises(NotFoundError):
        registrar_contagem(razao, "nao-existe", a.id, 3)


def test_contagem_encerrada_nao_aceita_alteracoes(razao):
    a, _, _ = _produtos(razao)
    contagem = abrir_contagem(razao, "CEGA")
    cancelar_contagem(razao, contagem.id)
    assert obter_contagem(razao, contagem.id).status is StatusContagem.CANCELADA
    with pytest.raises(ValidationError):
        registrar_contagem(razao, contagem.id, a.id, 1)
    with pytest.raises(ValidationError):
        finalizar_contagem(razao, contagem.id)
    with pytest.raises(ValidationError):
        cancelar_contagem(razao, contagem.id)

    outra = abrir_contagem(razao, "CEGA")
    finalizar_contagem(razao, outra.id)
    with pytest.raises(ValidationError):
        finalizar_contagem(razao, outra.id)


def test_finalizar_compara_contagem_com_saldo_atual(razao):
    a, b, _ = _produtos(razao)
    contagem = abrir_contagem(razao, "PARCIAL", produto_ids=[a.id, b.id])
    registrar_contagem(razao, contagem.id, a.id, 10)
    registrar_contagem(razao, contagem.id, b.id, 5)

    # movimentos depois da abertura: a contagem física continua valendo
    razao.registrar_saida(a.id, 4)
    razao.registrar_entrada(b.id, 2)

    resultado = finalizar_contagem(razao, contagem.id)
    assert resultado["falhas"] == []
    deltas = {m["produto_id"]: m["quantidade_delta"] for m in resultado["ajustes"]}
    assert deltas == {a.id: 4, b.id: -2}
    assert razao.repo.obter_produto(a.id).estoque_atual == 10
    assert razao.repo.obter_produto(b.id).estoque_atual == 5
    assert {i.produto_id: i.sistema_na_abertura for i in obter_contagem(razao, contagem.id).itens} == {a.id: 10, b.id: 5}
