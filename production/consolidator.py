# NG-HEADER: Nombre de archivo: consolidator.py
# NG-HEADER: Ubicación: production/consolidator.py
# NG-HEADER: Descripción: Consolida líneas resueltas que apuntan al mismo artículo.
# NG-HEADER: Lineamientos: Ver AGENTS.md
from __future__ import annotations

import math
from typing import Dict, Iterable, List

from .models import ResolvedDemandLine


def consolidate(lines: Iterable[ResolvedDemandLine]) -> List[ResolvedDemandLine]:
    """Agrupa por ``target_article`` sumando cantidades y uniendo orígenes.

    El resultado no depende del orden de entrada en cantidades ni en orígenes:
    la suma usa ``math.fsum`` y los orígenes quedan ordenados y sin repetir.
    Las líneas de salida siguen el orden de primera aparición del destino.
    """
    groups: Dict[str, List[ResolvedDemandLine]] = {}
    for line in lines:
        groups.setdefault(line.target_article, []).append(line)

    out: List[ResolvedDemandLine] = []
    for target, group in groups.items():
        head = group[0]
        if len(group) == 1:
            out.append(
                ResolvedDemandLine(
                    target_article=target,
                    quantity=head.quantity,
                    kind=head.kind,
                    origin_articles=sorted(set(head.origin_articles)),
                    description=head.description,
                    codigo_barras=head.codigo_barras,
                    parent_article=head.parent_article,
                    units_per_pack=head.units_per_pack,
                )
            )
            continue
        origins = sorted({o for line in group for o in line.origin_articles})
        out.append(
            ResolvedDemandLine(
                target_article=target,
                quantity=math.fsum(line.quantity for line in group),
                kind=head.kind,
                origin_articles=origins,
                description=next((line.description for line in group if line.description), None),
                codigo_barras=next((line.codigo_barras for line in group if line.codigo_barras), None),
                # con varios padres no hay un único pack de referencia
                parent_article=head.parent_article if len({line.parent_article for line in group}) == 1 else None,
                units_per_pack=head.units_per_pack if len({line.units_per_pack for line in group}) == 1 else None,
            )
        )
    return out
