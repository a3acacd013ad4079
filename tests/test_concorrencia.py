import threading

import pytest

from estoque_pet.domain.errors import ConflictError, InsufficientStock
from estoque_pet.usecases.razao import Razao
from estoque_pet.usecases.verificar_estoque import run_verificar


def _em_paralelo(n, alvo):
    barreira = threading.Barrier(n)
    resultados = [None] * n

    def worker(i):
        barreira.wait()
        try:
            resultados[i] = alvo(i)
        except (InsufficientStock, ConflictError) as e:
            resultados[i] = e

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return resultados


def test_duas_saidas_concorrentes_sem_saldo_para_ambas(repo_real):
    razao = Razao(repo_real)
    p = razao.cadastrar_produto("VAC-V10", "Vacina V10", saldo_inicial=50)

    quantidades = [30, 40]
    resultados = _em_paralelo(2, lambda i: razao.registrar_saida(p.id, quantidades[i]))

    ok = [r for r in resultados if not isinstance(r, Exception)]
    falhas = [r for r in resultados if isinstance(r, Exception)]
    assert len(ok) == 1
    assert len(falhas) == 1
    assert isinstance(falhas[0], (InsufficientStock, ConflictError))

    movs = razao.listar_movimentacoes(produto_id=p.id)
    assert len(movs) == 1
    atual = repo_real.obter_produto(p.id).estoque_atual
    assert atual in (10, 20)
    assert atual == 50 + movs[0].quantidade_delta


def test_saida_e_entrada_concorrentes_nao_perdem_atualizacao(repo_real):
    razao = Razao(repo_real)
    p = razao.cadastrar_produto("VAC-V8", "Vacina V8", saldo_inicial=10)

    def alvo(i):
        if i == 0:
            return razao.registrar_saida(p.id, 10)
        return razao.registrar_entrada(p.id, 10)

    resultados = _em_paralelo(2, alvo)
    assert not any(isinstance(r, Exception) for r in resultados)

    # qualquer ordem termina no mesmo saldo
    atual = repo_real.obter_produto(p.id).estoque_atual
    movs = razao.listar_movimentacoes(produto_id=p.id)
    assert len(movs) == 2
    assert atual == 10
    assert atual == pytest.approx(10 + sum(m.quantidade_delta for m in movs))


def test_entradas_concorrentes_somam_todas(repo_real):
    razao = Razao(repo_real)
    p = razao.cadastrar_produto("ARE-4", "Areia 4kg")

    def alvo(i):
        for _ in range(5):
            while True:
                try:
                    razao.registrar_entrada(p.id, 1)
                    break
                except ConflictError:
                    continue
        return i

    resultados = _em_paralelo(6, alvo)
    assert resultados == list(range(6))

    movs = razao.listar_movimentacoes(produto_id=p.id)
    assert len(movs) == 30
    assert sorted(m.sequencia for m in movs) == list(range(1, 31))
    assert len({m.data for m in movs}) == 30
    assert repo_real.obter_produto(p.id).estoque_atual == 30


def test_auditoria_concorrente_nao_bloqueia_produto_consistente(repo_real):
    razao = Razao(repo_real)
    produtos = [razao.cadastrar_produto(f"SKU-{i:02d}", f"Produto {i:02d}", saldo_inicial=100) for i in range(30)]
    alvo_id = produtos[-1].id

    def alvo(i):
        if i == 0:
            achadas = []
            for _ in range(15):
                achadas.extend(run_verificar(repo_real))
            return achadas
        feitas = 0
        while feitas < 40:
            try:
                razao.registrar_entrada(alvo_id, 1)
            except ConflictError:
                continue
            feitas += 1
        return feitas

    divergencias, feitas = _em_paralelo(2, alvo)
    assert divergencias == []
    assert feitas == 40

    atual = repo_real.obter_produto(alvo_id)
    assert atual.bloqueado is False
    assert atual.estoque_atual == 140
    assert run_verificar(repo_real) == []
