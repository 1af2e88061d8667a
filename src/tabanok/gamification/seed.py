"""Default reward catalog for the Kamëntsá learning platform."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.gamification.catalog_service import build_definition, get_reward_by_name
from tabanok.gamification.enums import RewardTrigger, RewardType
from tabanok.gamification.schemas import RewardDefinitionCreate

logger = logging.getLogger(__name__)

REWARD_SEED_DATA: list[dict] = [
    # Points
    {
        "name": "Puntos por Lección",
        "title": "Puntos por Lección Completada",
        "description": "Gana puntos al finalizar una lección.",
        "type": RewardType.POINTS,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {"type": "points", "value": 50},
    },
    {
        "name": "Puntos por Ejercicio",
        "title": "Puntos por Ejercicio Correcto",
        "description": "Obtén puntos por responder correctamente a un ejercicio.",
        "type": RewardType.POINTS,
        "trigger": RewardTrigger.EXERCISE_COMPLETION,
        "reward_value": {"type": "points", "value": 20},
    },
    {
        "name": "Bonificación Diaria",
        "title": "Bonificación por Racha Diaria",
        "description": "Recompensa por mantener tu racha de aprendizaje diaria.",
        "type": RewardType.POINTS,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {"type": "points", "value": 100},
    },
    {
        "name": "Puntos por Contribución",
        "title": "Puntos por Contribución Cultural",
        "description": "Gana puntos al compartir contenido cultural.",
        "type": RewardType.POINTS,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {"type": "points", "value": 75},
    },
    # Badges
    {
        "name": "Aprendiz de Bronce",
        "title": "Medalla: Aprendiz de Bronce",
        "description": "Otorgada por completar las primeras unidades.",
        "type": RewardType.BADGE,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {
            "type": "badge",
            "value": "aprendiz_bronce",
            "image_url": "/images/badges/aprendiz_bronce.png",
        },
    },
    {
        "name": "Explorador de Unidades",
        "title": "Medalla: Explorador de Unidades",
        "description": "Otorgada por completar todas las unidades de un módulo.",
        "type": RewardType.BADGE,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {
            "type": "badge",
            "value": "explorador_unidades",
            "image_url": "/images/badges/explorador_unidades.png",
        },
    },
    {
        "name": "Colaborador de Plata",
        "title": "Medalla: Colaborador Activo",
        "description": "Otorgada por participar activamente en la comunidad.",
        "type": RewardType.BADGE,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {
            "type": "badge",
            "value": "colaborador_activo",
            "image_url": "/images/badges/colaborador_activo.png",
        },
    },
    # Achievements
    {
        "name": "Logro: Maestro del Alfabeto",
        "title": "Logro: Maestro del Alfabeto",
        "description": "Alcanza la maestría en el alfabeto Kamëntsá.",
        "type": RewardType.ACHIEVEMENT,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {"type": "achievement", "value": "maestro_alfabeto"},
    },
    {
        "name": "Logro: Experto en Vocabulario",
        "title": "Logro: Experto en Vocabulario",
        "description": "Domina un amplio vocabulario en Kamëntsá.",
        "type": RewardType.ACHIEVEMENT,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {"type": "achievement", "value": "experto_vocabulario"},
    },
    {
        "name": "Logro: Nivel de Fluidez Avanzado",
        "title": "Logro: Nivel de Fluidez Avanzado",
        "description": "Alcanza un alto nivel de fluidez en el idioma.",
        "type": RewardType.ACHIEVEMENT,
        "trigger": RewardTrigger.LEVEL_UP,
        "reward_value": {"type": "achievement", "value": "fluidez_avanzado"},
    },
    # Discounts
    {
        "name": "Descuento 10%",
        "title": "10% de Descuento en la Tienda",
        "description": "Obtén un 10% de descuento en cualquier compra.",
        "type": RewardType.DISCOUNT,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "points_cost": 500,
        "reward_value": {"type": "discount", "value": 10},
    },
    {
        "name": "Descuento 25%",
        "title": "25% de Descuento en la Tienda",
        "description": "Obtén un 25% de descuento en cualquier compra.",
        "type": RewardType.DISCOUNT,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "points_cost": 1500,
        "reward_value": {"type": "discount", "value": 25},
    },
    # Exclusive content
    {
        "name": "Contenido Exclusivo: Mitos",
        "title": "Acceso a Mitos y Leyendas Inéditas",
        "description": "Desbloquea una colección de mitos y leyendas Kamëntsá no disponibles públicamente.",
        "type": RewardType.EXCLUSIVE_CONTENT,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "points_cost": 750,
        "reward_value": {"type": "exclusive_content", "value": "contenido-mitos"},
        "is_secret": True,
    },
    # Customization
    {
        "name": "Título Personalizado: Explorador",
        "title": "Título de Perfil: Explorador Kamëntsá",
        "description": 'Desbloquea el título "Explorador Kamëntsá" para tu perfil.',
        "type": RewardType.CUSTOMIZATION,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "points_cost": 1000,
        "reward_value": {
            "type": "customization",
            "value": {"customization_type": "profile_title", "customization_value": "Explorador Kamëntsá"},
        },
    },
    # Cultural (limited by window and seats)
    {
        "name": "Acceso a Taller Cultural",
        "title": "Acceso a Taller de Artesanía",
        "description": "Obtén acceso a un taller virtual sobre artesanía tradicional Kamëntsá.",
        "type": RewardType.CULTURAL,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "points_cost": 2000,
        "reward_value": {
            "type": "cultural",
            "value": {
                "event_name": "Taller de Artesanía",
                "date": "2025-08-15T10:00:00Z",
                "platform": "Zoom",
            },
        },
        "is_limited": True,
        "limited_quantity": 50,
        "start_date": datetime(2025, 8, 1, tzinfo=timezone.utc),
        "end_date": datetime(2025, 8, 14, 23, 59, 59, tzinfo=timezone.utc),
    },
    # Experience
    {
        "name": "Multiplicador de Experiencia",
        "title": "Multiplicador de Experiencia (2x)",
        "description": "Gana el doble de puntos de experiencia por un tiempo limitado.",
        "type": RewardType.EXPERIENCE,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "points_cost": 800,
        "reward_value": {"type": "experience", "value": {"multiplier": 2.0, "duration_hours": 24}},
        "expiration_days": 7,
    },
    # Content
    {
        "name": "Guía de Pronunciación",
        "title": "Guía Detallada de Pronunciación",
        "description": "Desbloquea una guía avanzada sobre la fonética Kamëntsá.",
        "type": RewardType.CONTENT,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "points_cost": 300,
        "reward_value": {"type": "content", "value": "guia-pronunciacion"},
    },
    # Seasonal (limited by window only)
    {
        "name": "Bonificación de Verano",
        "title": "Bonificación de Puntos de Verano",
        "description": "Gana puntos extra durante el evento de verano.",
        "type": RewardType.POINTS,
        "trigger": RewardTrigger.LESSON_COMPLETION,
        "reward_value": {"type": "points", "value": 150},
        "is_limited": True,
        "start_date": datetime(2025, 7, 1, tzinfo=timezone.utc),
        "end_date": datetime(2025, 8, 31, 23, 59, 59, tzinfo=timezone.utc),
    },
]


async def seed_rewards(db: AsyncSession) -> int:
    """Insert catalog entries that are not present yet (matched by name).

    Existing entries are left untouched so that ``times_awarded`` and admin
    edits survive restarts. Returns the number of rewards inserted.
    """
    seeded = 0
    for reward_data in REWARD_SEED_DATA:
        if await get_reward_by_name(db, reward_data["name"]) is not None:
            continue
        db.add(build_definition(RewardDefinitionCreate(**reward_data)))
        seeded += 1

    await db.commit()
    logger.info("Seeded %d reward definitions (%d in catalog)", seeded, len(REWARD_SEED_DATA))
    return seeded
