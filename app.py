# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db estoque_pet.db
  python app.py produto cadastrar RACAO-15KG "Ração Premium 15kg" --unidade UN --minimo 5
  python app.py entrada RACAO-15KG 10 --custo 189,90 --documento NF-123
  python app.py saida RACAO-15KG 2 --motivo VENDA
  python app.py ajuste RACAO-15KG --saldo 7 --minimo 4
  python app.py posicao --filtro below-min
  python app.py verificar
"""

from estoque_pet.adapters.cli import main

if __name__ == "__main__":
    main()
