"""Static marker tables for lab report extraction.

Everything here is read-only data. ``ParserConfig.default()`` wraps these
tables in immutable mappings; nothing mutates them at runtime.
"""

# ========================================
# Categories
# ========================================

# Category name -> canonical parameter names (markers) expected inside it.
# Order matters: it is the tie-break order when two category names match at
# the same offset, and the marker order used for positional lookup.
CATEGORY_MARKERS: dict[str, tuple[str, ...]] = {
    "HEMATOLOGIA": (
        "Leucocitos",
        "Eritrocitos",
        "Hemoglobina",
        "Hematocrito",
        "V.C.M.",
        "H.C.M.",
        "C.H.C.M.",
        "A.D.E.",
        "Plaquetas",
        "V.H.S.",
        "Eosinófilos",
        "Basófilos",
        "Neutrófilos",
        "Linfocitos",
        "Monocitos",
    ),
    "ORINAS": (
        "Aspecto",
        "Color",
        "Densidad",
        "pH",
        "Leucocitos",
        "Nitritos",
        "Proteína",
        "Glucosa",
        "Cuerpos cetónicos",
        "Urobilinógeno",
        "Bilirrubina",
        "Sangre (Hb)",
        "Hematíes",
        "Piocitos",
        "Células epiteliales",
        "Bacterias",
        "Mucus",
        "Levaduras",
        "Cristales oxalato cálcico",
        "Cristales amorfos",
        "Hialinos",
        "Granulosos gruesos",
    ),
    "Estudio de lípidos": (
        "Colesterol Total",
        "Colesterol HDL",
        "Colesterol No HDL",
        "Colesterol LDL (Friedewald)",
        "Colesterol VLDL",
        "Triglicéridos",
        "Colesterol total / HDL",
    ),
    "Perfil Hepático": (
        "Bilirrubina total",
        "Bilirrubina directa",
        "A.S.A.T. (GOT)",
        "A.L.A.T. (GPT)",
        "Fosfatasa alcalina",
        "Gama-Glutamiltransp",
        "Tpo de protrombina",
        "I.N.R. (Razón Intern. Normal.)",
        "FIB-4",
    ),
    "Vitaminas": (
        "Vitamina B12",
        "25-hidroxi-vitamina D",
    ),
    "Perfil Bioquímico": (
        "Bilirrubina total",
        "Bilirrubina directa",
        "Creatinina",
        "Glucosa",
        "Acido úrico",
        "Urea",
        "Calcio",
        "Fósforo",
        "Colesterol",
        "Triglicéridos",
        "Proteínas totales",
        "Albúmina",
        "Globulinas",
        "Índice Alb/Glob",
        "A.S.A.T. (GOT)",
        "A.L.A.T. (GPT)",
        "Fosfatasa alcalina",
        "Lactato Deshidrogenasa",
    ),
    "tiroídeas": ("Tirotropina (TSH ultrasensible)",),
    # Section headers without a marker set; parameters under them are found
    # with the generic line patterns.
    "HEMOGRAMA": (),
    "BIOQUIMICA": (),
    "QUIMICA SANGUINEA": (),
    "QUIMICA": (),
    "LIPIDOS": (),
    "HORMONAS": (),
    "INMUNOLOGIA": (),
    "COAGULACION": (),
    "ORINA": (),
}

# ========================================
# Lookahead windows
# ========================================

# Relative line offsets (inclusive) searched for value/reference after a
# marker line.
DEFAULT_LOOKAHEAD: tuple[int, int] = (1, 4)

# Leukocyte differential rows print the percentage two lines further down.
LEUKOCYTE_DIFFERENTIAL = (
    "Eosinófilos",
    "Basófilos",
    "Neutrófilos",
    "Linfocitos",
    "Monocitos",
)

LOOKAHEAD_OVERRIDES: dict[str, tuple[int, int]] = {
    **{marker: (3, 4) for marker in LEUKOCYTE_DIFFERENTIAL},
    "Tpo de protrombina": (5, 7),
}

# ========================================
# Deny lists
# ========================================

# Labels that look like "Name: value" lines but are document metadata.
# Compared after accent stripping and lowercasing.
METADATA_LABELS = frozenset(
    {
        "nombre",
        "paciente",
        "run",
        "rut",
        "run/dni",
        "dni",
        "id",
        "ficha",
        "edad",
        "sexo",
        "genero",
        "fecha",
        "fecha de nacimiento",
        "fecha de informe",
        "fecha de emision",
        "fecha de recepcion",
        "toma de muestra",
        "hora",
        "dr(a)",
        "dr",
        "dra",
        "doctor",
        "medico",
        "medico solicitante",
        "procedencia",
        "laboratorio",
        "direccion",
        "telefono",
        "pagina",
        "orden",
        "validado por",
        "tecnologo medico",
        "responsable",
        "metodo",
        "muestra",
    }
)

# Uppercase lines that are table/page headers rather than exam sections.
HEADER_LABELS = frozenset(
    {
        "PACIENTE",
        "NOMBRE",
        "FECHA",
        "FECHA DE INFORME",
        "TOMA DE MUESTRA",
        "DOCTOR",
        "MEDICO",
        "MEDICO SOLICITANTE",
        "EDAD",
        "SEXO",
        "EXAMEN",
        "EXAMENES",
        "RESULTADO",
        "RESULTADOS",
        "UNIDAD",
        "UNIDADES",
        "VALOR DE REFERENCIA",
        "VALORES DE REFERENCIA",
        "LABORATORIO",
        "LABORATORIO CLINICO",
        "INFORME",
        "INFORME DE RESULTADOS",
        "PAGINA",
        "PROCEDENCIA",
        "VALIDADO POR",
    }
)

# ========================================
# Qualitative results
# ========================================

QUALITATIVE_TOKENS = (
    "No Reactivo",
    "Reactivo",
    "Negativo",
    "Positivo",
    "Normal",
    "Anormal",
    "Ausente",
    "Presente",
    "No se observan",
    "Escasos",
    "Abundantes",
)

# ========================================
# Lipid panel cut-offs
# ========================================

# Fixed cut-offs that replace the document's own reference text for the
# lipid panel. Non-authoritative defaults kept for behavioral compatibility,
# not medical guidance. Keys are normalized names (see normalize_label).
LIPID_ALIASES: dict[str, str] = {
    "colesteroltotal": "total_cholesterol",
    "colesterolhdl": "hdl",
    "hdlcolesterol": "hdl",
    "colesterolldl": "ldl",
    "colesterolldlfriedewald": "ldl",
    "colesterolldldirecto": "ldl",
    "ldlcolesterol": "ldl",
    "trigliceridos": "triglycerides",
}

LIPID_CUTOFFS: dict[str, dict[str, float]] = {
    "total_cholesterol": {"max": 200.0},
    "hdl": {"low": 35.0, "high": 55.0},
    "ldl": {"below": 100.0},
    "triglycerides": {"max": 150.0},
}
