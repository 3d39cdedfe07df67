import numbers
from typing import Any, Dict, Iterable, List, Tuple, Type, TypeVar, Union

import pydantic

from clouddns_client.exceptions import ValidationError
from clouddns_client.models import Domain, DomainDetails, DomainUpdate, ImportDetails

MIN_TTL = 300
BIND_9 = "BIND_9"

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _coerce(model: Type[ModelT], value: Union[ModelT, Dict[str, Any]]) -> ModelT:
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e


def _require(item: pydantic.BaseModel, *fields: str) -> None:
    for field in fields:
        if not getattr(item, field):
            alias = type(item).model_fields[field].alias or field
            raise ValidationError(f"details.{alias} is a required argument.")


def create_domains_payload(
    domains: Iterable[Union[DomainDetails, Dict[str, Any]]]
) -> Dict[str, List[Dict[str, Any]]]:
    """Validates every domain up front, then shapes the POST /domains body"""
    details = [_coerce(DomainDetails, domain) for domain in domains]
    if not details:
        raise ValidationError("At least one domain is required.")

    new_domains = []
    for domain in details:
        _require(domain, "name", "email_address")
        new_domain: Dict[str, Any] = {
            "name": domain.name,
            "emailAddress": domain.email_address,
        }
        ttl = domain.ttl
        if isinstance(ttl, numbers.Real) and not isinstance(ttl, bool) and ttl >= MIN_TTL:
            new_domain["ttl"] = ttl
        if domain.comment:
            new_domain["comment"] = domain.comment
        new_domains.append(new_domain)

    return {"domains": new_domains}


def import_domain_payload(
    details: Union[ImportDetails, Dict[str, Any]]
) -> Dict[str, List[Dict[str, Any]]]:
    imported = _coerce(ImportDetails, details)
    _require(imported, "content_type", "contents")
    if imported.content_type != BIND_9:
        raise ValidationError(
            f"Unsupported contentType {imported.content_type!r}, only {BIND_9} is accepted."
        )
    return {
        "domains": [{"contentType": imported.content_type, "contents": imported.contents}]
    }


def update_domains_payload(
    updates: Iterable[Union[DomainUpdate, Dict[str, Any]]]
) -> Dict[str, List[Dict[str, Any]]]:
    items = [_coerce(DomainUpdate, update) for update in updates]
    if not items:
        raise ValidationError("At least one domain update is required.")

    data = []
    for update in items:
        if update.id is None or update.id == "":
            raise ValidationError("details.id is a required argument.")
        data.append(update.model_dump(by_alias=True, exclude_none=True))
    return {"domains": data}


def delete_domains_params(
    domains: Iterable[Union[Domain, int, str]], delete_subdomains: bool = True
) -> List[Tuple[str, str]]:
    """Query parameters for a batch delete: one ``id`` per domain plus the cascade flag"""
    params = []
    for domain in domains:
        domain_id = domain.id if isinstance(domain, Domain) else domain
        if domain_id is None or domain_id == "":
            raise ValidationError("Every domain to delete needs an id.")
        params.append(("id", str(domain_id)))
    if not params:
        raise ValidationError("At least one domain is required.")

    params.append(("deleteSubdomains", "true" if delete_subdomains else "false"))
    return params
