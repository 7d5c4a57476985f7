"""Player data file loader.

Supported inputs:
- JSON list of mapped records: ``name``, ``position``, ``club``, ``price``,
  ``predictions`` (points per gameweek starting at GW1)
- JSON list of raw prediction-site records: ``webName``, ``data.positionId``,
  ``data.priceInfo.value``, ``data.predictions[].predicted_pts``,
  ``team.codeName``
- CSV with ``name``, ``position``, ``club``, ``price`` and one column per
  gameweek named ``{prefix}{n}`` (``gw1``, ``gw2``...)
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fpl_squad_optimizer.config import config
from fpl_squad_optimizer.domain.common.result import DomainError, Result, field_errors_from
from fpl_squad_optimizer.domain.models import Player, Position

# positionId used by the prediction site
POSITION_IDS = {1: Position.GK, 2: Position.DEF, 3: Position.MID, 4: Position.FWD}


class RawPrediction(BaseModel):
    predicted_pts: float = 0.0


class RawPriceInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: Optional[float] = Field(None, alias="Value")


class RawData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    position_id: Optional[int] = Field(None, alias="positionId")
    price_info: Optional[RawPriceInfo] = Field(None, alias="priceInfo")
    predictions: List[RawPrediction] = Field(default_factory=list)


class RawTeam(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code_name: str = Field(..., alias="codeName")


class RawPlayerRecord(BaseModel):
    """Pydantic model for validating raw prediction-site player records."""

    model_config = ConfigDict(populate_by_name=True)

    web_name: str = Field(..., min_length=1, alias="webName")
    data: RawData
    team: RawTeam

    def to_player(self) -> Player:
        position = POSITION_IDS.get(self.data.position_id or 1)
        if position is None:
            raise ValueError(f"Unknown positionId {self.data.position_id}")
        return Player(
            name=self.web_name,
            position=position,
            club=self.team.code_name,
            price=self.data.price_info.value if self.data.price_info else None,
            predictions=tuple(p.predicted_pts for p in self.data.predictions),
        )


class PlayerDataLoader:
    """Loads player records from JSON or CSV into validated Player models."""

    def __init__(self, prediction_column_prefix: Optional[str] = None):
        self.prediction_column_prefix = (
            prediction_column_prefix or config.data.prediction_column_prefix
        )

    def load(self, path: Optional[Union[str, Path]] = None) -> Result[List[Player]]:
        """Load players from ``path`` (defaults to ``config.data.player_data_path``)."""
        path = Path(path or config.data.player_data_path)
        if not path.exists():
            return Result.failure(
                DomainError.data_access_error(
                    f"Player data file not found: {path}", details={"path": str(path)}
                )
            )

        try:
            if path.suffix.lower() == ".csv":
                records = self._read_csv(path)
            else:
                with open(path, "r", encoding="utf-8") as f:
                    records = json.load(f)
        except (OSError, ValueError) as e:
            return Result.failure(
                DomainError.data_access_error(
                    f"Could not read player data from {path}: {e}",
                    details={"path": str(path)},
                )
            )

        result = self.parse_records(records)
        if result.is_success:
            logger.info(f"📊 Loaded {len(result.value)} players from {path}")
        return result

    def parse_records(self, records: Any) -> Result[List[Player]]:
        """Validate a list of mapped or raw records."""
        if not isinstance(records, list):
            return Result.failure(
                DomainError.validation_error("Player data must be a list of records")
            )

        players: List[Player] = []
        field_errors: Dict[str, str] = {}
        for index, record in enumerate(records):
            try:
                if isinstance(record, dict) and "webName" in record:
                    players.append(RawPlayerRecord.model_validate(record).to_player())
                else:
                    players.append(Player.model_validate(record))
            except ValidationError as e:
                for loc, msg in field_errors_from(e.errors()).items():
                    field_errors[f"{index}.{loc}"] = msg
            except ValueError as e:
                field_errors[f"{index}"] = str(e)

        if field_errors:
            return Result.failure(
                DomainError.validation_error(
                    f"{len(field_errors)} invalid field(s) in player data",
                    field_errors=field_errors,
                )
            )
        return Result.success(players)

    def _read_csv(self, path: Path) -> List[Dict[str, Any]]:
        df = pd.read_csv(path)
        missing = {"name", "position", "club"} - set(df.columns)
        if missing:
            raise ValueError(f"Missing columns: {sorted(missing)}")

        pattern = re.compile(rf"^{re.escape(self.prediction_column_prefix)}(\d+)$")
        gw_columns: Dict[int, str] = {}
        for column in df.columns:
            match = pattern.match(str(column))
            if match:
                gw_columns[int(match.group(1))] = column
        last_gw = max(gw_columns, default=0)

        records = []
        for row in df.to_dict(orient="records"):
            price = row.get("price")
            predictions = []
            for gw in range(1, last_gw + 1):
                value = row.get(gw_columns[gw]) if gw in gw_columns else None
                predictions.append(0.0 if value is None or pd.isna(value) else float(value))
            records.append(
                {
                    "name": str(row["name"]),
                    "position": row["position"],
                    "club": str(row["club"]),
                    "price": None if price is None or pd.isna(price) else float(price),
                    "predictions": predictions,
                }
            )
        return records
