import sqlite3
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


# SQLite rendition of the bookkeeping tables the reports read.
SCHEMA = """
CREATE TABLE currencies (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL UNIQUE, base INTEGER NOT NULL DEFAULT 0, rate REAL NOT NULL DEFAULT 1.0);
CREATE TABLE customers (id INTEGER PRIMARY KEY AUTOINCREMENT, full_name TEXT NOT NULL, phone TEXT NOT NULL DEFAULT '', address TEXT NOT NULL DEFAULT '');
CREATE TABLE suppliers (id INTEGER PRIMARY KEY AUTOINCREMENT, full_name TEXT NOT NULL, phone TEXT NOT NULL DEFAULT '', address TEXT NOT NULL DEFAULT '');
CREATE TABLE units (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL);
CREATE TABLE products (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, price REAL, unit TEXT);
CREATE TABLE accounts (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL);
CREATE TABLE employees (id INTEGER PRIMARY KEY AUTOINCREMENT, full_name TEXT NOT NULL);
CREATE TABLE expense_types (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL UNIQUE);

CREATE TABLE purchases (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    supplier_id INTEGER NOT NULL REFERENCES suppliers(id),
    date TEXT NOT NULL,
    notes TEXT,
    currency_id INTEGER REFERENCES currencies(id),
    total_amount REAL NOT NULL DEFAULT 0,
    additional_cost REAL NOT NULL DEFAULT 0,
    batch_number TEXT
);
CREATE TABLE purchase_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id INTEGER NOT NULL REFERENCES purchases(id) ON DELETE CASCADE,
    product_id INTEGER NOT NULL REFERENCES products(id),
    unit_id INTEGER NOT NULL REFERENCES units(id),
    per_price REAL NOT NULL,
    amount REAL NOT NULL,
    total REAL NOT NULL,
    cost_price REAL,
    retail_price REAL,
    expiry_date TEXT
);
CREATE TABLE purchase_additional_costs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id INTEGER NOT NULL REFERENCES purchases(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    amount REAL NOT NULL
);
CREATE TABLE purchase_payments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id INTEGER NOT NULL REFERENCES purchases(id) ON DELETE CASCADE,
    account_id INTEGER REFERENCES accounts(id),
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    rate REAL NOT NULL,
    total REAL NOT NULL,
    date TEXT NOT NULL,
    notes TEXT
);

CREATE TABLE sales (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER NOT NULL REFERENCES customers(id),
    date TEXT NOT NULL,
    notes TEXT,
    currency_id INTEGER REFERENCES currencies(id),
    exchange_rate REAL NOT NULL DEFAULT 1,
    total_amount REAL NOT NULL DEFAULT 0,
    base_amount REAL NOT NULL DEFAULT 0,
    paid_amount REAL NOT NULL DEFAULT 0,
    additional_cost REAL NOT NULL DEFAULT 0
);
CREATE TABLE sale_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id INTEGER NOT NULL REFERENCES sales(id) ON DELETE CASCADE,
    product_id INTEGER NOT NULL REFERENCES products(id),
    unit_id INTEGER NOT NULL REFERENCES units(id),
    per_price REAL NOT NULL,
    amount REAL NOT NULL,
    total REAL NOT NULL,
    purchase_item_id INTEGER REFERENCES purchase_items(id)
);
CREATE TABLE sale_payments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id INTEGER NOT NULL REFERENCES sales(id) ON DELETE CASCADE,
    account_id INTEGER REFERENCES accounts(id),
    currency_id INTEGER REFERENCES currencies(id),
    exchange_rate REAL NOT NULL DEFAULT 1,
    amount REAL NOT NULL,
    base_amount REAL NOT NULL DEFAULT 0,
    date TEXT NOT NULL
);
CREATE TABLE sale_additional_costs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id INTEGER NOT NULL REFERENCES sales(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    amount REAL NOT NULL
);

CREATE TABLE expenses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    expense_type_id INTEGER NOT NULL REFERENCES expense_types(id),
    account_id INTEGER REFERENCES accounts(id),
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    rate REAL NOT NULL DEFAULT 1.0,
    total REAL NOT NULL,
    date TEXT NOT NULL,
    bill_no TEXT,
    description TEXT
);
CREATE TABLE account_transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL REFERENCES accounts(id),
    transaction_type TEXT NOT NULL,
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    rate REAL NOT NULL,
    total REAL NOT NULL,
    transaction_date TEXT NOT NULL,
    notes TEXT
);
CREATE TABLE deductions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    employee_id INTEGER NOT NULL REFERENCES employees(id),
    currency TEXT NOT NULL,
    rate REAL NOT NULL DEFAULT 1.0,
    amount REAL NOT NULL
);
"""

# ids of the reference rows written by seed_reference
AFN, USD = 1, 2
AHMAD, KARIM = 1, 2
SUPPLIER_A = 1
PCS = 1
RICE, OIL = 1, 2
CASH = 1
RENT, UTILITIES = 1, 2
EMPLOYEE = 1


def create_db(path: Path) -> Path:
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    return path


def insert(db: Path, table: str, **values) -> int:
    cols = ", ".join(values)
    marks = ", ".join("?" for _ in values)
    conn = sqlite3.connect(str(db))
    conn.execute("PRAGMA foreign_keys = ON;")
    cur = conn.cursor()
    cur.execute(f"INSERT INTO {table} ({cols}) VALUES ({marks})", tuple(values.values()))
    conn.commit()
    new_id = int(cur.lastrowid)
    conn.close()
    return new_id


def seed_reference(db: Path) -> None:
    insert(db, "currencies", name="AFN", base=1, rate=1.0)
    insert(db, "currencies", name="USD", base=0, rate=70.0)
    insert(db, "customers", full_name="Ahmad")
    insert(db, "customers", full_name="Karim")
    insert(db, "suppliers", full_name="Supplier A")
    insert(db, "units", name="pcs")
    insert(db, "products", name="Rice", price=150.0, unit="kg")
    insert(db, "products", name="Oil", price=120.0, unit="l")
    insert(db, "accounts", name="Cash")
    insert(db, "expense_types", name="Rent")
    insert(db, "expense_types", name="Utilities")
    insert(db, "employees", full_name="Employee")


def make_db(tmp_path: Path, name: str = "books.db") -> Path:
    db = create_db(tmp_path / name)
    seed_reference(db)
    return db


def add_sale(db: Path, customer_id: int, date: str, items=(), costs=(), payments=(), exchange_rate: float = 1.0, currency_id: int = AFN) -> int:
    """items: (product_id, qty, per_price[, purchase_item_id]); costs: (name, amount); payments: (amount, rate, date)."""
    total = sum(i[1] * i[2] for i in items) + sum(c[1] for c in costs)
    sale_id = insert(
        db,
        "sales",
        customer_id=customer_id,
        date=date,
        currency_id=currency_id,
        exchange_rate=exchange_rate,
        total_amount=total,
        base_amount=total * exchange_rate,
    )
    for it in items:
        product_id, qty, price = it[0], it[1], it[2]
        purchase_item_id = it[3] if len(it) > 3 else None
        insert(
            db,
            "sale_items",
            sale_id=sale_id,
            product_id=product_id,
            unit_id=PCS,
            per_price=price,
            amount=qty,
            total=qty * price,
            purchase_item_id=purchase_item_id,
        )
    for name, amount in costs:
        insert(db, "sale_additional_costs", sale_id=sale_id, name=name, amount=amount)
    for amount, rate, pay_date in payments:
        insert(
            db,
            "sale_payments",
            sale_id=sale_id,
            account_id=CASH,
            currency_id=USD if rate != 1 else AFN,
            exchange_rate=rate,
            amount=amount,
            base_amount=amount * rate,
            date=pay_date,
        )
    return sale_id


def add_purchase(db: Path, supplier_id: int, date: str, items=(), costs=(), payments=(), batch_number=None) -> tuple[int, list[int]]:
    """items: dicts with product_id, qty, per_price and optional cost_price, retail_price, expiry_date."""
    total = sum(i["qty"] * i["per_price"] for i in items) + sum(c[1] for c in costs)
    purchase_id = insert(
        db,
        "purchases",
        supplier_id=supplier_id,
        date=date,
        currency_id=AFN,
        total_amount=total,
        batch_number=batch_number,
    )
    item_ids = []
    for it in items:
        item_ids.append(
            insert(
                db,
                "purchase_items",
                purchase_id=purchase_id,
                product_id=it["product_id"],
                unit_id=PCS,
                per_price=it["per_price"],
                amount=it["qty"],
                total=it["qty"] * it["per_price"],
                cost_price=it.get("cost_price"),
                retail_price=it.get("retail_price"),
                expiry_date=it.get("expiry_date"),
            )
        )
    for name, amount in costs:
        insert(db, "purchase_additional_costs", purchase_id=purchase_id, name=name, amount=amount)
    for amount, rate, pay_date in payments:
        insert(
            db,
            "purchase_payments",
            purchase_id=purchase_id,
            account_id=CASH,
            amount=amount,
            currency="AFN" if rate == 1 else "USD",
            rate=rate,
            total=amount * rate,
            date=pay_date,
        )
    return purchase_id, item_ids


def add_expense(db: Path, expense_type_id: int, amount: float, rate: float, date: str, currency: str = "AFN", **extra) -> int:
    return insert(
        db,
        "expenses",
        expense_type_id=expense_type_id,
        account_id=CASH,
        amount=amount,
        currency=currency,
        rate=rate,
        total=amount * rate,
        date=date,
        **extra,
    )
