# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db armazem.db
  python app.py camara criar "Câmara 1" --quadras 2 --lados 2 --filas 3 --andares 4
  python app.py produto criar --lote L-001 --quantidade 20 --peso-unidade 50
  python app.py retirada solicitar 1 --tipo PARCIAL --quantidade 5
  python app.py movimentacoes pendentes --auto
"""

from armazem.adapters.cli import main

if __name__ == "__main__":
    main()
