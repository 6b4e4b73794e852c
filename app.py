# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db menucost.db
  python app.py store add "Loja Centro" --fixed-cost 3000000 --target-sales 1000
  python app.py recipe show "Kimchi Stew" --store <id>
  python app.py rel menu --store <id> --json
"""

from menucost.adapters.cli import main

if __name__ == "__main__":
    main()
