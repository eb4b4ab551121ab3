"""Pydantic models for API request payloads."""

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubstanceCreate(_Payload):
    """New substance payload."""

    name: str
    advertised_mass: float = Field(alias="advertisedMass")
    gross_initial_mass: float | None = Field(default=None, alias="grossInitialMass")


class SubstanceUpdate(_Payload):
    """Partial substance update; only fields that are sent are applied."""

    name: str | None = None
    advertised_mass: float | None = Field(default=None, alias="advertisedMass")
    gross_initial_mass: float | None = Field(default=None, alias="grossInitialMass")
    gross_final_mass: float | None = Field(default=None, alias="grossFinalMass")
    active: bool | None = None


class SubstanceDeactivate(_Payload):
    """Finish payload with an optional final gross mass."""

    gross_final_mass: float | None = Field(default=None, alias="grossFinalMass")


class EntryCreate(_Payload):
    """New entry payload."""

    substance_id: str = Field(alias="substanceId")
    person: str
    delta: float
    notes: str | None = None


class EntryUpdate(_Payload):
    """Entry delta correction payload."""

    delta: float
