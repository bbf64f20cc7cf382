"""
Schemas Pydantic de base pour le noyau comptable
Configuration commune et conversion des erreurs de validation
"""
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from compta.core.exceptions import ValidationError

SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseSchema(BaseModel):
    """Schema de base avec configuration commune"""

    model_config = ConfigDict(
        from_attributes=True,  # Permet la conversion depuis ORM
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",  # Rejeter les champs inconnus
    )


def validate_input(
    schema: Type[SchemaType],
    data: Any,
    context: Optional[str] = None
) -> SchemaType:
    """
    Valide une entree avec un schema et convertit l'erreur pydantic
    en ValidationError applicative (422).

    Args:
        schema: Classe du schema
        data: dict, instance du schema ou objet ORM
        context: Prefixe du message (ex: "Ligne 3")

    Raises:
        ValidationError: details["errors"] contient les erreurs par champ
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        message = f"{context}: {summary}" if context else summary
        raise ValidationError(message=message, details={"errors": errors}) from exc
