# menucost/adapters/cli.py
"""
CLI do sistema de custos (Typer).

Comandos principais:
- migrate                          -> aplica migrações e cria views
- store add/list/set               -> lojas e parâmetros de rateio
- ingredient add/list/adjust/import
- recipe add/show/delete/import    -> fichas técnicas e árvore de custos
- order create/cancel/list         -> pedidos do PDV
- purchase add, production         -> entradas e baixas de estoque
- expense add, sales set           -> despesas e vendas do dia
- rel menu/simulate/bep/dashboard/loss/forecast/depletion/sourcing

Todos os comandos aceitam `--db`; os que dependem de loja aceitam
`--store` (ou a variável MENUCOST_STORE). Relatórios aceitam `--json`.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from menucost.adapters.parsers import parse_number
from menucost.config import DB_PATH, DEFAULTS
from menucost.domain.errors import MenuCostError, ValidationError
from menucost.domain.models import QUADRANTS
from menucost.infra.repositories import IngredientRepo, RecipeRepo
from menucost.usecases.orders import cancel_order, create_order, list_orders
from menucost.usecases.recipe_cost import run_recipe_cost
from menucost.usecases.recipes import create_recipe, delete_recipe, import_recipes
from menucost.usecases.reports import (
    prepare_database,
    report_break_even,
    report_dashboard,
    report_inventory_loss,
    report_menu_performance,
    report_predictive_depletion,
    report_procurement_forecast,
    report_profit_simulation,
    report_sourcing,
)
from menucost.usecases.stock import (
    add_expense,
    adjust_stock,
    create_ingredient,
    create_purchase,
    import_ingredients,
    list_ingredients,
    record_production,
    upsert_sales_record,
)
from menucost.usecases.stores import create_store, list_stores, update_store


app = typer.Typer(help="menucost: custos de cardápio")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
STORE_OPT = typer.Option(..., "--store", envvar="MENUCOST_STORE", help="ID da loja")
JSON_OPT = typer.Option(False, "--json", help="Saída em JSON")

_QUADRANT_COLORS = dict(zip(QUADRANTS, ("green", "yellow", "cyan", "red")))


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
    if isinstance(val, (int, float)):
        return f"{val:,.2f}"
    return str(val)


def _display_table(data: Dict[str, Any] | List[Dict[str, Any]], title: str = "Resultado",
                   columns: Optional[List[str]] = None) -> None:
    """Exibe listas de registros ou dicionários planos em tabelas Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    if isinstance(data, list):
        cols = columns or [c for c in data[0].keys() if not c.endswith("_id") and c != "id"] or list(data[0].keys())
        table = Table(title=title, box=box.ROUNDED)
        for col in cols:
            numeric = isinstance(data[0].get(col), (int, float)) and not isinstance(data[0].get(col), bool)
            table.add_column(col, justify="right" if numeric else "left")
        for row in data:
            values = []
            for col in cols:
                val = row.get(col)
                if col == "quadrant":
                    color = _QUADRANT_COLORS.get(val, "white")
                    values.append(f"[bold {color}]{val}[/]")
                else:
                    values.append(_fmt(val))
            table.add_row(*values)
        console.print(table)
        return

    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor", justify="right")
    for key, val in data.items():
        if isinstance(val, (dict, list)):
            continue
        table.add_row(key, _fmt(val))
    console.print(table)


def _fail(e: Exception) -> None:
    console.print(f"[bold red]Erro:[/] {e}")
    raise typer.Exit(code=1)


def _split(raw: str, n_min: int, n_max: int, label: str) -> List[str]:
    parts = [p.strip() for p in raw.split(":")]
    if not (n_min <= len(parts) <= n_max) or not all(parts):
        raise ValidationError(f"invalid {label}: {raw!r}")
    return parts


def _num(val: str, label: str) -> float:
    n = parse_number(val)
    if n is None:
        raise ValidationError(f"invalid {label}: {val!r}")
    return n


def _ingredient_ref(store_id: str, ref: str, db_path: str) -> str:
    repo = IngredientRepo(db_path)
    if repo.get(store_id, ref):
        return ref
    ing = repo.find_by_name(store_id, ref)
    if ing is None:
        raise ValidationError(f"unknown ingredient: {ref}")
    return ing["id"]


def _recipe_ref(store_id: str, ref: str, db_path: str) -> Dict[str, Any]:
    repo = RecipeRepo(db_path)
    rec = repo.get(store_id, ref) or repo.find_by_name(store_id, ref)
    if rec is None:
        raise ValidationError(f"unknown recipe: {ref}")
    return rec


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Aplica migrações e recria as views auxiliares."""
    prepare_database(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


# -----------------------
# lojas
# -----------------------

store_app = typer.Typer(help="Lojas e parâmetros de custo fixo")
app.add_typer(store_app, name="store")


@store_app.command("add")
def cmd_store_add(
    name: str = typer.Argument(..., help="Nome da loja"),
    fixed_cost: float = typer.Option(0.0, help="Custo fixo mensal"),
    target_sales: int = typer.Option(DEFAULTS.default_target_sales_count, help="Meta mensal de unidades vendidas"),
    db_path: str = DB_OPT,
):
    """Cadastra uma loja e mostra o ID gerado."""
    try:
        res = create_store(
            {"name": name, "monthly_fixed_cost": fixed_cost, "monthly_target_sales_count": target_sales},
            db_path=db_path,
        )
    except MenuCostError as e:
        _fail(e)
    typer.echo(res["store_id"])


@store_app.command("list")
def cmd_store_list(db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    rows = list_stores(db_path=db_path)
    if as_json:
        _print_json(rows)
        return
    _display_table(rows, title="Lojas", columns=["id", "name", "monthly_fixed_cost", "monthly_target_sales_count"])


@store_app.command("set")
def cmd_store_set(
    store_id: str = STORE_OPT,
    name: Optional[str] = typer.Option(None),
    fixed_cost: Optional[float] = typer.Option(None, help="Custo fixo mensal"),
    target_sales: Optional[int] = typer.Option(None, help="Meta mensal de unidades vendidas"),
    db_path: str = DB_OPT,
):
    """Altera dados da loja (apenas os informados)."""
    changes: Dict[str, Any] = {}
    if name is not None:
        changes["name"] = name
    if fixed_cost is not None:
        changes["monthly_fixed_cost"] = fixed_cost
    if target_sales is not None:
        changes["monthly_target_sales_count"] = target_sales
    if not changes:
        typer.echo("Nada a alterar. Informe pelo menos um campo.")
        raise typer.Exit(code=1)
    try:
        res = update_store(store_id, changes, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Loja atualizada")


# -----------------------
# insumos
# -----------------------

ing_app = typer.Typer(help="Insumos e estoque")
app.add_typer(ing_app, name="ingredient")


@ing_app.command("add")
def cmd_ingredient_add(
    name: str = typer.Argument(...),
    price: float = typer.Option(..., help="Preço por unidade de compra"),
    purchase_unit: str = typer.Option(..., help='Ex.: "20kg"'),
    usage_unit: str = typer.Option(..., help='Ex.: "g"'),
    factor: Optional[float] = typer.Option(None, help="Unidades de uso por unidade de compra (sugerido se omitido)"),
    loss_rate: float = typer.Option(0.0, help="Fração de perda [0, 1)"),
    stock: float = typer.Option(0.0, help="Estoque atual (unidade de compra)"),
    safety_stock: float = typer.Option(0.0, help="Estoque de segurança (unidade de compra)"),
    category: Optional[str] = typer.Option(None),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Cadastra um insumo e mostra o ID gerado."""
    try:
        res = create_ingredient(store_id, {
            "name": name, "purchase_price": price, "purchase_unit": purchase_unit,
            "usage_unit": usage_unit, "conversion_factor": factor, "loss_rate": loss_rate,
            "current_stock": stock, "safety_stock": safety_stock, "category": category,
        }, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    typer.echo(res["ingredient_id"])


@ing_app.command("list")
def cmd_ingredient_list(store_id: str = STORE_OPT, db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    rows = list_ingredients(store_id, db_path=db_path)
    if as_json:
        _print_json(rows)
        return
    _display_table(rows, title="Insumos", columns=[
        "id", "name", "purchase_price", "purchase_unit", "usage_unit",
        "conversion_factor", "loss_rate", "current_stock", "safety_stock",
    ])


@ing_app.command("adjust")
def cmd_ingredient_adjust(
    ingredient: str = typer.Argument(..., help="ID ou nome do insumo"),
    amount: float = typer.Argument(..., help="Quantidade em unidade de compra"),
    adjustment_type: str = typer.Option("correction", "--type", help="purchase | spoilage | correction"),
    reason: Optional[str] = typer.Option(None),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Ajuste manual de estoque."""
    try:
        ing_id = _ingredient_ref(store_id, ingredient, db_path)
        res = adjust_stock(store_id, ing_id, amount, adjustment_type, reason, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Estoque ajustado")


@ing_app.command("import")
def cmd_ingredient_import(
    path: str = typer.Argument(..., help="XLSX/CSV de insumos"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Importa insumos de planilha."""
    try:
        res = import_ingredients(store_id, path, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Importação de insumos")


# -----------------------
# fichas técnicas
# -----------------------

recipe_app = typer.Typer(help="Fichas técnicas (menus e preps)")
app.add_typer(recipe_app, name="recipe")


@recipe_app.command("add")
def cmd_recipe_add(
    name: str = typer.Argument(...),
    recipe_type: str = typer.Option("menu", "--type", help="menu | prep"),
    price: Optional[float] = typer.Option(None, help="Preço de venda (menu)"),
    batch_size: float = typer.Option(1.0, help="Rendimento (prep)"),
    batch_unit: str = typer.Option("ea", help="Unidade do rendimento (prep)"),
    category: Optional[str] = typer.Option(None),
    component: List[str] = typer.Option([], "--component", "-c",
                                         help="TIPO:ID_OU_NOME:QTD (ex.: ingredient:Flour:45)"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Cadastra uma receita com seus componentes e mostra o ID gerado."""
    try:
        comps = []
        for raw in component:
            ctype, ref, qty = _split(raw, 3, 3, "component")
            if ctype == "ingredient":
                item_id = _ingredient_ref(store_id, ref, db_path)
            else:
                item_id = _recipe_ref(store_id, ref, db_path)["id"]
            comps.append({"item_type": ctype, "item_id": item_id, "quantity": _num(qty, "quantity")})
        res = create_recipe(store_id, {
            "name": name, "type": recipe_type, "selling_price": price,
            "batch_size": batch_size, "batch_unit": batch_unit, "category": category,
        }, comps, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    typer.echo(res["recipe_id"])


def _add_branch(tree: Tree, item: Dict[str, Any]) -> None:
    label = (
        f"{item['name']} [dim]({item['item_type']})[/] "
        f"{item['quantity']:g} {item['usage_unit']} × {item['unit_cost']:,.4f} = [bold]{item['total_cost']:,.2f}[/]"
    )
    node = tree.add(label)
    for child in item.get("children") or []:
        _add_branch(node, child)


@recipe_app.command("show")
def cmd_recipe_show(
    recipe: str = typer.Argument(..., help="ID ou nome da receita"),
    days: int = typer.Option(DEFAULTS.analysis_window_days, help="Janela de vendas para o rateio"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Mostra a árvore de custos, o rateio de custo fixo e a margem."""
    try:
        rec = _recipe_ref(store_id, recipe, db_path)
        res = run_recipe_cost(store_id, rec["id"], window_days=days, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    if as_json:
        _print_json(res)
        return
    tree = Tree(f"[bold]{res['name']}[/] ({res['type']})")
    for item in res["tree"]:
        _add_branch(tree, item)
    console.print(tree)
    ov = res["overhead"]
    summary = {
        "material_cost": res["material_cost"],
        "overhead_per_unit": ov["per_unit"],
        "overhead_method": ov["method"],
        "total_cost": res["total_cost"],
        "selling_price": res["selling_price"],
        "margin": res["margin"],
        "margin_rate": res["margin_rate"],
        "cost_rate": res["cost_rate"],
    }
    _display_table(summary, title="Resumo de custo")
    if res["warning_count"]:
        console.print(f"[yellow]{res['warning_count']} componente(s) não encontrado(s) omitido(s) do custo.[/]")


@recipe_app.command("delete")
def cmd_recipe_delete(
    recipe: str = typer.Argument(..., help="ID ou nome da receita"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    try:
        rec = _recipe_ref(store_id, recipe, db_path)
        res = delete_recipe(store_id, rec["id"], db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    typer.echo(f">> Receita removida: {rec['name']}")
    if res["dangling_references"]:
        console.print(f"[yellow]{res['dangling_references']} receita(s) ainda referenciam este item.[/]")


@recipe_app.command("import")
def cmd_recipe_import(
    path: str = typer.Argument(..., help="XLSX/CSV de fichas técnicas"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Importa fichas técnicas de planilha (componentes por nome)."""
    try:
        res = import_recipes(store_id, path, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Importação de fichas técnicas")
    if res["unresolved"]:
        _display_table(res["unresolved"], title="Componentes não encontrados")


# -----------------------
# pedidos
# -----------------------

order_app = typer.Typer(help="Pedidos do PDV")
app.add_typer(order_app, name="order")


@order_app.command("create")
def cmd_order_create(
    item: List[str] = typer.Option(..., "--item", "-i", help="MENU:QTD[:PREÇO] (ID ou nome)"),
    payment: str = typer.Option("card", help="card | cash | transfer"),
    created_at: Optional[str] = typer.Option(None, help="Data/hora ISO (default: agora)"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Registra um pedido (baixa de estoque e vendas do dia)."""
    try:
        items = []
        for raw in item:
            parts = _split(raw, 2, 3, "item")
            line = {"menu_id": _recipe_ref(store_id, parts[0], db_path)["id"], "quantity": _num(parts[1], "quantity")}
            if len(parts) == 3:
                line["price"] = _num(parts[2], "price")
            items.append(line)
        res = create_order(store_id, items, payment, created_at, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Pedido registrado")
    typer.echo(res["order_id"])


@order_app.command("cancel")
def cmd_order_cancel(
    order_id: str = typer.Argument(...),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    try:
        res = cancel_order(store_id, order_id, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    typer.echo(">> Pedido cancelado." if res["changed"] else ">> Pedido já estava cancelado.")


@order_app.command("list")
def cmd_order_list(
    start: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    limit: int = typer.Option(100),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    rows = list_orders(store_id, start, end, limit, db_path=db_path)
    if as_json:
        _print_json(rows)
        return
    _display_table(rows, title="Pedidos", columns=[
        "id", "created_at", "total_amount", "total_cost", "payment_method", "status",
    ])


# -----------------------
# compras, produção, despesas, vendas
# -----------------------

purchase_app = typer.Typer(help="Compras de insumos")
app.add_typer(purchase_app, name="purchase")


@purchase_app.command("add")
def cmd_purchase_add(
    item: List[str] = typer.Option(..., "--item", "-i", help="INSUMO:QTD:PREÇO (ID ou nome)"),
    supplier: Optional[str] = typer.Option(None),
    purchase_date: Optional[str] = typer.Option(None, "--date", help="YYYY-MM-DD"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Registra uma compra (estoque, último preço e despesa)."""
    try:
        items = []
        for raw in item:
            ref, qty, price = _split(raw, 3, 3, "item")
            items.append({
                "ingredient_id": _ingredient_ref(store_id, ref, db_path),
                "quantity": _num(qty, "quantity"), "price": _num(price, "price"),
            })
        res = create_purchase(store_id, supplier, items, purchase_date, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Compra registrada")


@app.command("production")
def cmd_production(
    recipe: str = typer.Argument(..., help="ID ou nome da receita (prep)"),
    quantity: float = typer.Argument(..., help="Número de lotes"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Registra produção de um prep e baixa os insumos consumidos."""
    try:
        rec = _recipe_ref(store_id, recipe, db_path)
        res = record_production(store_id, rec["id"], quantity, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    typer.echo(f">> Produção registrada: {rec['name']} x{quantity:g} ({len(res['consumed'])} insumos baixados)")


expense_app = typer.Typer(help="Despesas")
app.add_typer(expense_app, name="expense")


@expense_app.command("add")
def cmd_expense_add(
    category: str = typer.Argument(...),
    amount: float = typer.Argument(...),
    expense_date: Optional[str] = typer.Option(None, "--date", help="YYYY-MM-DD"),
    memo: Optional[str] = typer.Option(None),
    fixed: bool = typer.Option(False, "--fixed", help="Despesa fixa"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    try:
        res = add_expense(store_id, category, amount, expense_date, memo, fixed, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Despesa registrada")


sales_app = typer.Typer(help="Vendas diárias")
app.add_typer(sales_app, name="sales")


@sales_app.command("set")
def cmd_sales_set(
    sales_date: str = typer.Argument(..., help="YYYY-MM-DD"),
    revenue: float = typer.Argument(...),
    memo: Optional[str] = typer.Option(None),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
):
    """Lança a receita do dia (mantém o CMV acumulado pelos pedidos)."""
    try:
        res = upsert_sales_record(store_id, sales_date, revenue, memo, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    _display_table(res, title="Vendas do dia")


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios gerenciais")
app.add_typer(rel_app, name="rel")


@rel_app.command("menu")
def rel_menu(
    days: int = typer.Option(DEFAULTS.analysis_window_days, help="Janela de vendas em dias"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Engenharia de cardápio (star / plowhorse / puzzle / dog)."""
    try:
        res = report_menu_performance(store_id, days, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    if as_json:
        _print_json(res)
        return
    _display_table(res["data"], title=f"Engenharia de Cardápio ({days} dias)", columns=[
        "name", "category", "selling_price", "total_cost", "margin", "margin_rate",
        "sales_volume", "total_profit", "quadrant",
    ])
    m = res["metrics"]
    ov = res["overhead"]
    console.print(
        f"[dim]Volume médio: {m['avg_volume']:,.2f} · Margem média: {m['avg_margin']:,.2f} · "
        f"Rateio: {ov['per_unit']:,.0f}/un ({ov['method']})[/dim]"
    )


@rel_app.command("simulate")
def rel_simulate(
    vol_adj: float = typer.Option(0.0, help="Ajuste de volume (%)"),
    price_adj: float = typer.Option(0.0, help="Ajuste de preço (%)"),
    cost_adj: float = typer.Option(0.0, help="Ajuste de custo de material (%)"),
    month: Optional[str] = typer.Option(None, help="YYYY-MM (default: mês corrente)"),
    base_revenue: Optional[float] = typer.Option(None, help="Receita base (default: vendas do mês)"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Simulação de lucro what-if."""
    try:
        res = report_profit_simulation(store_id, vol_adj, price_adj, cost_adj, month, base_revenue, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    if as_json:
        _print_json(res)
        return
    rows = [{"metric": k, "current": v, "simulated": res["simulated"][k]} for k, v in res["current"].items()]
    _display_table(rows, title="Simulação de Lucro", columns=["metric", "current", "simulated"])


@rel_app.command("bep")
def rel_bep(
    target_profit: float = typer.Option(0.0, help="Lucro mensal desejado"),
    avg_ticket: Optional[float] = typer.Option(None, help="Ticket médio (default: pedidos do mês)"),
    margin_rate: Optional[float] = typer.Option(None, help="Margem de contribuição (%)"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Ponto de equilíbrio."""
    try:
        res = report_break_even(store_id, target_profit, avg_ticket, margin_rate, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    if as_json:
        _print_json(res)
        return
    _display_table(res, title="Ponto de Equilíbrio")


@rel_app.command("dashboard")
def rel_dashboard(
    months: int = typer.Option(6),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Painel mensal de receita, CMV, despesas e lucro."""
    try:
        res = report_dashboard(store_id, months, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    if as_json:
        _print_json(res)
        return
    _display_table(res["series"], title=f"Últimos {months} meses")
    _display_table(res["current"], title="Mês corrente")
    console.print(f"[dim]Valor em estoque: {res['stock_value']:,.2f}[/dim]")
    if res["low_stock"]:
        console.print(f"[yellow]Abaixo do estoque de segurança: {', '.join(res['low_stock'])}[/]")


@rel_app.command("loss")
def rel_loss(
    days: int = typer.Option(DEFAULTS.analysis_window_days),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Perdas: consumo teórico x descarte registrado."""
    try:
        res = report_inventory_loss(store_id, days, db_path=db_path)
    except MenuCostError as e:
        _fail(e)
    if as_json:
        _print_json(res)
        return
    _display_table(res["data"], title=f"Perdas de Estoque ({days} dias)")


@rel_app.command("forecast")
def rel_forecast(
    window_days: int = typer.Option(DEFAULTS.forecast_window_days),
    service_level: float = typer.Option(DEFAULTS.service_level, help="Nível de serviço (ex.: 0.95)"),
    lead_time: float = typer.Option(DEFAULTS.lead_time_days, help="Lead time em dias"),
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Previsão de compras: consumo médio, dias restantes e quantidade sugerida."""
    try:
        res = report_procurement_forecast(
            store_id, window_days, service_level=service_level, lead_time_days=lead_time, db_path=db_path
        )
    except (MenuCostError, ValueError) as e:
        _fail(e)
    if as_json:
        _print_json(res)
        return
    _display_table(res["data"], title="Previsão de Compras")


@rel_app.command("depletion")
def rel_depletion(
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Insumos com esgotamento previsto em menos de uma semana."""
    res = report_predictive_depletion(store_id, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    _display_table(res, title="Esgotamento Previsto")


@rel_app.command("sourcing")
def rel_sourcing(
    store_id: str = STORE_OPT,
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Economia potencial por fornecedor."""
    res = report_sourcing(store_id, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    _display_table(res, title="Oportunidades de Compra")


def main():
    app()


if __name__ == "__main__":
    main()
