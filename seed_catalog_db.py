# seed_catalog_db.py
from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from domain.kiosk.catalog_sqlite import init_sqlite_schema

DB_PATH = os.getenv("KIOSK_CATALOG_DB_PATH", "data/catalog.db")


def seed_products():
    # (sku, name, brand, category, subcategory, description, price, currency, stock, image_url)
    return [
        ("PVC-TUBE-050", 'Tubo PVC hidráulico 1/2" x 6 m', "Durman", "Plomería", "Tubería",
         "Tubo de PVC cédula 40 para agua fría.", 96.00, "MXN", 30, None),
        ("PVC-UNION-050", 'Unión roscada PVC 1/2"', "Durman", "Plomería", "Conexiones",
         'Unión roscada para tubo PVC hidráulico de 1/2".', 18.50, "MXN", 25, None),
        ("PVC-CPL-050", 'Cople recto PVC 1/2"', "Durman", "Plomería", "Conexiones",
         'Cople para unir tramos de tubo PVC de 1/2".', 8.90, "MXN", 0, None),
        ("PVC-GLUE-240", "Pegamento PVC 240 ml", "Oatey", "Plomería", "Adhesivos",
         "Cemento para tubería de PVC hidráulico.", 74.00, "MXN", 18, None),
        ("PVC-PRIMER-240", "Limpiador primer PVC 240 ml", "Oatey", "Plomería", "Adhesivos",
         "Prepara la superficie antes de pegar PVC.", 68.00, "MXN", 10, None),
        ("PTF-12", 'Cinta de teflón 1/2"x12m', "Truper", "Plomería", "Selladores",
         "Cinta PTFE para sellar roscas.", 12.00, "MXN", 40, None),
        ("CU-TUBE-050", 'Tubo de cobre tipo M 1/2" x 3 m', "Nacobre", "Plomería", "Tubería",
         "Tubo de cobre rígido para agua.", 412.00, "MXN", 7, None),
        ("CORTA-COBRE-001", 'Cortatubo para cobre 1/8" a 1 1/8"', "Truper", "Herramientas", "Plomería",
         "Cortatubo de rodillos para tubo de cobre y aluminio.", 289.00, "MXN", 6, None),
        ("REP-CORTA-001", "Repuesto cuchilla para cortatubo", "Truper", "Herramientas", "Refacciones",
         "Disco de corte de repuesto para cortatubo de cobre.", 59.00, "MXN", 12, None),
        ("WR-8IN", 'Llave ajustable 8"', "Truper", "Herramientas", "Llaves",
         "Llave perica cromada de 8 pulgadas.", 145.00, "MXN", 9, None),
        ("PAINT-VINIL-4L", "Pintura vinílica blanca 4 L", "Comex", "Pintura", "Interiores",
         "Pintura vinílica lavable para muros interiores.", 389.00, "MXN", 14, None),
        ("PAINT-ESMALTE-1L", "Esmalte alquidálico negro 1 L", "Comex", "Pintura", "Esmaltes",
         "Esmalte brillante para metal y madera.", 219.00, "MXN", 8, None),
        ("MASK-TAPE-36", "Cinta masking 36mm", "Tuk", "Pintura", "Accesorios",
         "Cinta de papel para delimitar áreas al pintar.", 32.00, "MXN", 50, None),
        ("TR-PANEL-1220", "Panel de tablaroca 1.22 x 2.44 m", "Panel Rey", "Construcción", "Tablaroca",
         "Panel de yeso para muros y plafones.", 198.00, "MXN", 20, None),
        ("MAD-TRIPLAY-15", "Triplay de pino 15 mm", "Maderas MX", "Construcción", "Madera",
         "Hoja de triplay de pino 1.22 x 2.44 m.", 465.00, "MXN", 5, None),
    ]


def seed_synonyms():
    # (product_sku, term)
    return [
        ("PTF-12", "teflon"),
        ("PTF-12", "cinta para rosca"),
        ("PVC-CPL-050", "cople"),
        ("PVC-CPL-050", "acople"),
        ("PVC-UNION-050", "union"),
        ("CORTA-COBRE-001", "cortador de tubo"),
        ("REP-CORTA-001", "cuchilla cortatubo"),
        ("WR-8IN", "perica"),
        ("WR-8IN", "llave perica"),
        ("PVC-GLUE-240", "pegamento pvc"),
        ("MASK-TAPE-36", "masking"),
    ]


def seed(db_path: str = DB_PATH) -> int:
    """
    Create/refresh the demo catalog. Safe to re-run: products are upserted and
    synonyms rewritten.
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    init_sqlite_schema(db_path)

    conn = sqlite3.connect(db_path)
    try:
        conn.executemany(
            """
            INSERT OR REPLACE INTO products (
                sku, name, brand, category, subcategory, description,
                price, currency, stock, image_url
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            seed_products(),
        )
        conn.execute("DELETE FROM synonyms")
        conn.executemany("INSERT INTO synonyms (product_sku, term) VALUES (?, ?)", seed_synonyms())
        conn.commit()

        return conn.execute("SELECT COUNT(*) FROM products").fetchone()[0]
    finally:
        conn.close()


def main():
    count = seed(DB_PATH)
    print(f"[OK] Seed complete. products rows = {count}")


if __name__ == "__main__":
    main()
