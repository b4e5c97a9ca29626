# domain/kiosk/verticals/hardware.py
#
# Business tables for the hardware-store kiosk. Operators edit SKUs/words here;
# the reconciler only reads these tables.
# All patterns/keywords are matched against normalized text (lower-case, no accents).

KIOSK_VERTICAL_HARDWARE = {
    "kiosk_type": "hardware",

    # Keyword Fallback Picker: +2 per group present in both utterance and product text
    "keyword_groups": [
        ["union", "roscada"],
        ["teflon", "ptfe", "ptf", "cinta"],
        ["cople", "acople", "empalme"],
        ["cortatubo", "corta tubo"],
        ["repuesto", "disco", "cuchilla"],
        ["pegamento", "cemento", "adhesivo"],
        ["primer", "limpiador"],
    ],

    # candidate search: single tokens allowed to widen the search
    "token_whitelist": [
        "repuesto", "disco", "cuchilla", "cortatubo", "corta", "tubo",
        "teflon", "ptfe", "union", "roscada", "cople", "pvc", "cobre",
    ],

    # "alternate" vocabulary: mentioning one of these while the proposal only
    # echoes the old cart is read as an implied swap
    "alternate_groups": {
        "union": r"union|roscada",
        "teflon": r"teflon|ptfe|ptf",
        "spare": r"repuesto|disco|cuchilla",
    },

    # Add-path ensure rules, evaluated in order
    "ensure_rules": [
        {
            "name": "spare",
            "when": r"repuesto|disco|cuchilla",
            "match_all": [r"repuesto|disco|cuchilla", r"cortatubo|corta tubo"],
            "present": r"repuesto|disco|cuchilla",
            "pinned_need": "spare",
            "why": "Agregado a tu pedido como repuesto del cortatubo.",
        },
        {
            "name": "teflon",
            "when": r"teflon|ptfe|ptf",
            "match_all": [r"teflon|ptfe|ptf"],
            "present": r"teflon|ptfe|ptf",
            "pinned_need": "teflon",
            "why": "Agregado para sellar roscas (cinta de teflón).",
        },
    ],

    # need-category -> SKUs known to satisfy it (fetched directly when not a candidate)
    "pinned_fallback_skus": {
        "teflon": ["PTF-12"],
        "spare": ["REP-CORTA-001"],
    },

    # tool in cart -> its spare part, ensured on a spare request
    "paired_spares": {
        "CORTA-COBRE-001": "REP-CORTA-001",
    },
    "spare_request": r"repuesto|disco|cuchilla",
    "paired_spare_why": "Agregado a tu pedido como repuesto del cortatubo.",

    # Upsell Rule Engine, table order, capped at 2
    "upsell_rules": [
        {"when_any": ["PVC-GLUE-240", "PVC-CPL-050"], "sku": "PTF-12", "name": "Cinta de teflón 1/2\"x12m"},
        {"when_any": ["PVC-GLUE-240", "PVC-CPL-050"], "sku": "WR-8IN", "name": "Llave ajustable 8\""},
        {"when_prefix": ["PAINT-"], "sku": "MASK-TAPE-36", "name": "Cinta masking 36mm"},
    ],

    # substitute in basket while the item it replaces is out of stock
    "stock_nudges": [
        {
            "name": "pvc_leak_coupling",
            "when_all": ["fuga", "pvc"],
            "out_of_stock_sku": "PVC-CPL-050",
            "substitute_sku": "PVC-UNION-050",
            "mentioned": r"agotad",
            "warning": "El **cople recto 1/2\"** está agotado. ",
            "confirm": "¿Desea confirmar la **Unión roscada 1/2\"** como alternativa?",
        },
    ],
}
