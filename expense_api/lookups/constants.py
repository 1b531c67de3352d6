"""
Default events and expense categories.

Format: each entry maps 1:1 to Event / Category columns (key, label).
The DB is seeded from these lists; admins add, relabel or deactivate rows
afterwards through /api/settings.
"""

EVENTS: list[dict] = [
    {"key": "peregrinatge_estiu_roma", "label": "Peregrinatge d'estiu (Roma)"},
    {"key": "bartimeu", "label": "Bartimeu"},
    {"key": "be_apostle", "label": "Be apostle"},
    {"key": "emunah", "label": "Emunah"},
    {"key": "escola_pregaria", "label": "Escola de pregària"},
    {"key": "exercicis_espirituals", "label": "Exercicis espirituals"},
    {"key": "har_tabor", "label": "Har Tabor"},
    {"key": "nicodemus", "label": "Nicodemus"},
    {"key": "trobada_adolescents", "label": "Trobada adolescents"},
    {"key": "equip_dele", "label": "Equip Dele"},
    {"key": "general", "label": "General"},
]

CATEGORIES: list[dict] = [
    {"key": "menjar", "label": "Menjar per activitats o reunions"},
    {"key": "transport", "label": "Transport"},
    {"key": "material_activitats", "label": "Material per activitats o reunions"},
    {"key": "dietes", "label": "Dietes"},
    {"key": "impresos_fotocopies", "label": "Impresos i fotocòpies"},
    {"key": "web_xarxes", "label": "Web/Xarxes socials"},
    {"key": "casa_convis", "label": "Casa de convis"},
    {"key": "formacio", "label": "Formació"},
    {"key": "cancellacions", "label": "Cancel·lacions"},
    {"key": "material_musica", "label": "Material música"},
    {"key": "reparacions", "label": "Reparacions"},
    {"key": "mobiliari", "label": "Mobiliari"},
]
