"""
植物識別（写真 → 学名）とケア情報生成（名前 → 育て方）のプロバイダ。

どちらも PlantAIProvider の2メソッドで呼ぶので、モック / 本物の API を
使用量チェック側に手を入れずに差し替えられる。
USE_REAL_AI_API=true で plant.id + OpenAI を使う（デフォルトはモック）
"""
from openai import OpenAI, OpenAIError
import base64
import json
import logging
import os
import random
from typing import Dict, Optional, Protocol

import requests

from schemas.ai import CareInstructions, Identification
from services.errors import AIProviderError

logger = logging.getLogger(__name__)

PLANT_ID_URL = "https://api.plant.id/v2/identify"
PLANT_ID_TIMEOUT_SEC = 60
OPENAI_MODEL = "gpt-4o-mini"


class PlantAIProvider(Protocol):
    def identify(self, image: bytes) -> Identification:
        ...

    def generate_care(self, plant_name: str) -> CareInstructions:
        ...


# -------------------------
# mock provider
# -------------------------
MOCK_SPECIES: Dict[str, Dict] = {
    "Monstera deliciosa": {
        "common_names": ["Monstera", "Swiss Cheese Plant", "Splitting Philodendron"],
        "care": {
            "watering_frequency_days": 7,
            "watering_amount": "mid",
            "light_requirements": "Bright indirect light, 6-8 hours daily. Avoid direct sun which can scorch leaves.",
            "fertilizing_tips": [
                "Fertilize every 4-6 weeks during growing season (spring/summer)",
                "Use balanced liquid fertilizer diluted to half strength",
            ],
            "pruning_tips": ["Prune yellow or damaged leaves at the base of the petiole"],
            "troubleshooting": ["Yellow leaves: usually overwatering or too much direct sun"],
        },
    },
    "Epipremnum aureum": {
        "common_names": ["Pothos", "Devil's Ivy", "Golden Pothos"],
        "care": {
            "watering_frequency_days": 7,
            "watering_amount": "mid",
            "light_requirements": "Tolerates low to bright indirect light. Grows faster in brighter conditions.",
            "fertilizing_tips": ["Fertilize every 4 weeks during growing season"],
            "pruning_tips": ["Prune regularly to encourage bushier growth"],
            "troubleshooting": ["Leggy growth: insufficient light, move closer to a window"],
        },
    },
    "Dracaena trifasciata": {
        "common_names": ["Snake Plant", "Mother-in-law's Tongue"],
        "care": {
            "watering_frequency_days": 14,
            "watering_amount": "low",
            "light_requirements": "Very adaptable. Prefers bright indirect light but tolerates low light well.",
            "fertilizing_tips": ["Fertilize once in spring and once in summer at half strength"],
            "pruning_tips": ["Remove damaged leaves at soil level"],
            "troubleshooting": ["Root rot: most common issue, caused by overwatering"],
        },
    },
    "Spathiphyllum wallisii": {
        "common_names": ["Peace Lily", "White Flag Plant"],
        "care": {
            "watering_frequency_days": 5,
            "watering_amount": "mid",
            "light_requirements": "Moderate indirect light. Tolerates low light. Avoid direct sun.",
            "fertilizing_tips": ["Fertilize every 4 weeks during growing season with diluted fertilizer"],
            "pruning_tips": ["Remove dead flowers and yellow leaves near the base"],
            "troubleshooting": ["Wilting: the plant needs water, it recovers quickly"],
        },
    },
    "Zamioculcas zamiifolia": {
        "common_names": ["ZZ Plant", "Zamioculcas"],
        "care": {
            "watering_frequency_days": 14,
            "watering_amount": "low",
            "light_requirements": "Tolerates low to bright indirect light. Prefers moderate indirect light.",
            "fertilizing_tips": ["Fertilize two or three times during growing season"],
            "pruning_tips": ["Rarely needs pruning, remove yellow stems at the base"],
            "troubleshooting": ["Yellow leaves: overwatering, let the soil dry out fully"],
        },
    },
}

UNKNOWN_PLANT_CARE = {
    "watering_frequency_days": 7,
    "watering_amount": "mid",
    "light_requirements": "Prefers bright, indirect light.",
    "fertilizing_tips": ["Fertilize monthly during spring and summer"],
    "pruning_tips": ["Remove dead or yellowing leaves"],
    "troubleshooting": ["Check soil moisture before watering"],
}


class MockPlantAI:
    """ランダムに種を選ぶモック。seed を渡すと結果が固定される"""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def identify(self, image: bytes) -> Identification:
        if not image:
            raise AIProviderError("Image is empty")

        name = self._random.choice(sorted(MOCK_SPECIES))
        confidence = round(0.85 + self._random.random() * 0.15, 2)
        return Identification(
            scientific_name=name,
            common_names=MOCK_SPECIES[name]["common_names"],
            confidence=confidence,
        )

    def generate_care(self, plant_name: str) -> CareInstructions:
        key = plant_name.strip().lower()
        for name, entry in MOCK_SPECIES.items():
            names = [name.lower()] + [c.lower() for c in entry["common_names"]]
            if key in names or any(key.startswith(n) for n in names):
                return CareInstructions(**entry["care"])
        return CareInstructions(**UNKNOWN_PLANT_CARE)


# -------------------------
# real provider (plant.id + OpenAI)
# -------------------------
def _extract_json(text: str) -> dict:
    """```json ... ``` で囲まれていても中身を取り出す"""
    body = text.strip()
    if "```json" in body:
        body = body.split("```json")[1].split("```")[0]
    elif "```" in body:
        body = body.split("```")[1].split("```")[0]
    return json.loads(body.strip())


class RemotePlantAI:
    def __init__(self, plant_id_api_key: Optional[str] = None, openai_api_key: Optional[str] = None):
        self.plant_id_api_key = plant_id_api_key or os.getenv("PLANT_ID_API_KEY")
        self.openai_api_key = openai_api_key or os.getenv("OPENAI_API_KEY")
        self._client = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.openai_api_key:
                raise AIProviderError("OPENAI_API_KEY is not set")
            self._client = OpenAI(api_key=self.openai_api_key)
        return self._client

    def identify(self, image: bytes) -> Identification:
        if not self.plant_id_api_key:
            raise AIProviderError("PLANT_ID_API_KEY is not set")

        body = {
            "images": [base64.b64encode(image).decode("utf-8")],
            "modifiers": ["similar_images"],
            "plant_details": ["common_names", "url", "wiki_description"],
        }
        try:
            resp = requests.post(
                PLANT_ID_URL,
                json=body,
                headers={"Api-Key": self.plant_id_api_key},
                timeout=PLANT_ID_TIMEOUT_SEC,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.exception("plant.id request failed")
            raise AIProviderError(f"plant.id API error: {e}") from e

        suggestions = data.get("suggestions") or []
        if not suggestions:
            raise AIProviderError("No plant could be identified from the photo")

        top = suggestions[0]
        details = top.get("plant_details") or {}
        return Identification(
            scientific_name=top.get("plant_name") or "Unknown Plant",
            common_names=details.get("common_names") or [],
            confidence=round(float(top.get("probability") or 0.0), 2),
        )

    def generate_care(self, plant_name: str) -> CareInstructions:
        prompt = f"""
Generate comprehensive care instructions for the plant: "{plant_name}"

Respond with ONLY a JSON object with this exact structure:
{{
  "watering_frequency_days": <number between 1-30>,
  "watering_amount": <one of "low", "mid", "heavy">,
  "light_requirements": "<string describing light needs>",
  "fertilizing_tips": ["<tip1>", "<tip2>", "<tip3>", "<tip4>"],
  "pruning_tips": ["<tip1>", "<tip2>", "<tip3>", "<tip4>"],
  "troubleshooting": ["<issue1>", "<issue2>", "<issue3>", "<issue4>"]
}}

Be specific to this plant species. Use "low" for drought-tolerant plants,
"mid" for typical houseplants and "heavy" for water-loving plants.
"""
        try:
            resp = self.client.chat.completions.create(
                model=OPENAI_MODEL,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": "You are a houseplant care expert. Output MUST be a JSON object."},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                max_tokens=500,
            )
        except OpenAIError as e:
            logger.exception("OpenAI request failed")
            raise AIProviderError(f"OpenAI API error: {e}") from e

        text = resp.choices[0].message.content or ""
        try:
            return CareInstructions(**_extract_json(text))
        except (ValueError, TypeError) as e:
            logger.error("could not parse care instructions: %s", text[:200])
            raise AIProviderError("Failed to parse care instructions from AI response") from e


# -------------------------
# provider selection
# -------------------------
_PROVIDER: Optional[PlantAIProvider] = None


def get_plant_ai() -> PlantAIProvider:
    """
    プロセス内で1つだけ作って使い回す。FastAPI の Depends からも呼ぶ
    """
    global _PROVIDER

    if _PROVIDER is None:
        if os.getenv("USE_REAL_AI_API", "false").lower() == "true":
            _PROVIDER = RemotePlantAI()
            logger.info("using remote plant AI provider (plant.id + OpenAI)")
        else:
            _PROVIDER = MockPlantAI()
            logger.info("using mock plant AI provider")
    return _PROVIDER
