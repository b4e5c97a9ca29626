from domain.kiosk.schema import KIOSK_PLAN_SCHEMA

# registered explicitly; one proposal schema per kiosk flavour
SCHEMAS = {
    "kiosk": KIOSK_PLAN_SCHEMA,
}
