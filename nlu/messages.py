# nlu/messages.py
from __future__ import annotations
from typing import Dict

TEMPLATES: Dict[str, str] = {
    # end of conversation
    "end.confirm": "Pulsa **Confirmar e imprimir** para finalizar.",
    "end.reply": "Perfecto. Pulsa **Confirmar e imprimir** para terminar. ¡Éxitos con tu proyecto!",

    # unparseable / failed proposal
    "fallback.confirm": "¿Deseas confirmar ahora?",
    "fallback.reply": "Tengo una sugerencia lista. ¿Deseas confirmar ahora?",

    # default reply when the model gave none
    "reply.default": "Listo. ¿Algo más?",

    # confirm prompts
    "confirm.add": "¿Deseas algo más? Si está todo, pulsa **Confirmar e imprimir**.",
    "confirm.replace": "¿Así está bien el cambio? Si sí, pulsa **Confirmar e imprimir**.",
    "confirm.restore": "Pulsa **Confirmar e imprimir** para finalizar, o indica cambios.",

    # no candidates found
    "details.title": "Necesito más detalles",
    "details.step.material": "Indica material (PVC, cobre, madera, tablaroca, etc.)",
    "details.step.size": "Especifica medidas/tamaño (diámetro, longitud, área)",
    "details.step.context": "Describe si hay roscas, presión de agua, o tipo de muro",
    "details.confirm": "¿Puedes dar un poco más de detalle para sugerir piezas exactas?",
    "details.reply": "¿Puedes dar un poco más de detalle para sugerir piezas exactas?",
}


def msg(key: str) -> str:
    return TEMPLATES.get(key) or TEMPLATES["reply.default"]
