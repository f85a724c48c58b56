# ABOUTME: Holds the default ordered (regex, label) tables used for text classification.
# ABOUTME: Covers circle-geometry concepts plus confusion, praise, clarity, and protocol cues.

from __future__ import annotations

from typing import Tuple

PatternRow = Tuple[str, str]

# Order defines selection priority; every matching row is reported.
TOPIC_PATTERNS: Tuple[PatternRow, ...] = (
    (r"نصف\s*ال?قطر|\bradius\b|\bradii\b", "radius"),
    (r"(?<!نصف ال)(?<!نصف )قطر|\bdiameter\b", "diameter"),
    (r"محيط|\bcircumference\b|\bperimeter\b", "circumference"),
    (r"مساحة|\barea\b", "area"),
    (r"π|\bpi\b|باي|٣[.,]١٤|3\.14|22\s*/\s*7", "pi"),
    (r"وتر|\bchord\b", "chord"),
    (r"قوس|\barc\b", "arc"),
    (r"مماس|\btangent\b", "tangent"),
    (r"قطاع|\bsector\b", "sector"),
    (r"زاوية\s*مركزية|\bcentral\s+angle\b", "central angle"),
    (r"زاوية\s*محيطية|\binscribed\s+angle\b", "inscribed angle"),
    (r"مركز\s*ال?دائرة|\bcent(?:er|re)\b", "center"),
)

CONFUSION_PATTERNS: Tuple[PatternRow, ...] = (
    (r"مش\s*فاهم|مو\s*فاهم|ما\s*فهمت|مافهمت|لم\s*أفهم|مش\s*واضح", "not understood"),
    (r"\bdon'?t\s+(?:understand|get)\b|\bconfus(?:ed|ing)\b|\bnot\s+clear\b|\blost\b", "not understood"),
    (r"كيف\s*يعني|يعني\s*ايش|ليش|\bhow\??$|\bwhy\??$", "asking why"),
    (r"\?\?+|؟؟+", "repeated question marks"),
    (r"🤔|😕|😵|😖|🤯|❓", "confused emoji"),
)

ENCOURAGEMENT_PATTERNS: Tuple[PatternRow, ...] = (
    (r"ممتاز|أحسنت|احسنت|برافو|شاطر|رائع|عظيم", "praise"),
    (r"\bwell\s+done\b|\bgreat\s+(?:job|work)\b|\bexcellent\b|\bawesome\b|\bgood\s+job\b", "praise"),
    (r"يعطيك\s*العافية|بارك\s*الله", "blessing"),
)

CLARITY_PATTERNS: Tuple[PatternRow, ...] = (
    (r"لاحظوا|انتبهوا|ركزوا|\bnotice\b|\bpay\s+attention\b", "attention cue"),
    (r"أولا|اولا|ثانيا|بعدين|الخطوة|\bfirst(?:ly)?\b|\bnext\b|\bstep\b", "sequencing"),
    (r"مثال|مثلا|\bfor\s+example\b|\be\.g\.", "example"),
    (r"يعني|بمعنى|\bin\s+other\s+words\b|\bthat\s+means\b", "rephrasing"),
)

QUESTION_PATTERNS: Tuple[PatternRow, ...] = (
    (r"[?؟]", "question mark"),
    (r"مين\s*يعرف|مين\s*بيقدر|\bwho\s+can\b|\bwho\s+knows\b|\bwhat\s+is\b", "open question"),
)

SELF_CORRECTION_PATTERNS: Tuple[PatternRow, ...] = (
    (r"عفوا|آسف|اسف|أقصد|اقصد|غلطت|خطأ\s*مني", "self correction"),
    (r"\bsorry\b|\bi\s+mean\b|\bcorrection\b|\bmy\s+mistake\b|\bscratch\s+that\b", "self correction"),
)

CALLED_TO_FRONT_PATTERNS: Tuple[PatternRow, ...] = (
    (r"تعال\s*(?:ع|على|عال)\s*(?:ال)?(?:لوح|سبورة)|اطلع\s*(?:ع|على|عال)\s*(?:ال)?(?:لوح|سبورة)", "called to board"),
    (r"\bcome\s+(?:up\s+)?to\s+the\s+(?:board|front)\b|\bshare\s+your\s+screen\b", "called to board"),
)
