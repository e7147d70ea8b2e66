"""Fournisseur de calcul déterministe pour le développement local.

Ce module implémente un fournisseur factice qui produit des charges utiles déterministes (même
forme que le fournisseur réel) sans dépendance réseau. Les valeurs dérivent uniquement de la
requête: ce n'est pas un calcul astronomique.
"""

from typing import Any

from jyotish.domain.entities import ComputationRequest
from jyotish.infra.astro.base import ProviderClient

_SIGNS = [
    "Aries", "Taurus", "Gemini", "Cancer", "Leo", "Virgo",
    "Libra", "Scorpio", "Sagittarius", "Capricorn", "Aquarius", "Pisces",
]
_NAKSHATRAS = ["Ashwini", "Bharani", "Krittika", "Rohini", "Mrigashira", "Ardra", "Punarvasu"]
_PLANETS = ["Sun", "Moon", "Mars", "Mercury", "Jupiter", "Venus", "Saturn", "Rahu", "Ketu"]


def _seed(request: ComputationRequest) -> int:
    utc = request.instant.utc
    return utc.year + utc.month * 31 + utc.day * 7 + utc.hour * 3 + utc.minute


class FakeDeterministicProvider(ProviderClient):
    """Fournisseur factice déterministe.

    Produit des résultats prévisibles et cohérents pour la démo et le développement sans appel au
    fournisseur réel.
    """

    async def get_chart(self, request: ComputationRequest) -> dict[str, Any]:
        """Retourne une carte factice déterministe.

        Args:
            request: requête de calcul (seul l'instant UTC influence le résultat).

        Returns:
            dict[str, Any]: carte au format du fournisseur (snake_case).
        """
        s = _seed(request)

        def placement(offset: int) -> dict[str, Any]:
            return {
                "sign_name": _SIGNS[(s + offset) % len(_SIGNS)],
                "degree": round(((s * (offset + 1)) % 3000) / 100, 2),
                "nakshatra_name": _NAKSHATRAS[(s + offset) % len(_NAKSHATRAS)],
            }

        positions = [
            {"planet": p, "sign_name": _SIGNS[(s + i) % len(_SIGNS)], "house": i % 12 + 1}
            for i, p in enumerate(_PLANETS)
        ]
        return {
            "ascendant": placement(0),
            "moon_sign": placement(3),
            "sun_sign": placement(7),
            "charts": [
                {"chart_type": t, "chart_name": n, "positions": positions}
                for t, n in (("d1", "Rashi"), ("d9", "Navamsha"), ("d10", "Dasamsha"))
            ],
            "yogas": [
                {"yoga_name": "Gaja Kesari", "yoga_type": "raja", "strength": 0.8},
                {"yoga_name": "Budha Aditya", "yoga_type": "dhana", "strength": 0.6},
                {"yoga_name": "Chandra Mangala", "yoga_type": "dhana", "strength": 0.4},
            ],
        }

    async def get_period(self, request: ComputationRequest) -> dict[str, Any]:
        """Retourne une chaîne de périodes factice à 5 niveaux."""
        s = _seed(request)
        lords = [_PLANETS[(s + i) % len(_PLANETS)] for i in range(5)]
        return {
            "current_period": {
                "vimshottari": lords[0],
                "antardasha": lords[1],
                "pratyantardasha": lords[2],
                "sookshma_dasha": lords[3],
                "yogini_dasha": lords[4],
            }
        }

    async def get_almanac(self, request: ComputationRequest) -> dict[str, Any]:
        """Retourne un almanach factice pour la date UTC de naissance."""
        s = _seed(request)
        return {
            "panchang": {
                "date": request.instant.utc.strftime("%Y-%m-%d"),
                "tithi": {"name": f"Tithi {s % 15 + 1}"},
                "nakshatra": {"name": _NAKSHATRAS[s % len(_NAKSHATRAS)]},
                "yoga": {"name": f"Yoga {s % 27 + 1}"},
                "karana": {"name": f"Karana {s % 11 + 1}"},
            }
        }
