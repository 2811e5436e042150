"""Repositories, inventories and templates stores.

Reads of these resources assemble the whole loaded graph (credentials,
environments, surveys and vaults) and decrypt it in one cascade pass.
"""
from __future__ import annotations

import logging
from typing import Any

from ..exceptions import (
    InvalidRecordError,
    InventoryNotFoundError,
    RepositoryNotFoundError,
    TemplateNotFoundError,
)
from ..models import (
    EventType,
    Inventory,
    Project,
    Repository,
    Template,
    TemplateSurvey,
    TemplateValue,
    TemplateVault,
)
from .base import Resource, utcnow

logger = logging.getLogger("gexec.store")


class Repositories(Resource):
    table_name = "repositories"
    model = Repository
    not_found = RepositoryNotFoundError
    event_type = EventType.REPOSITORY

    def _load(self, row: dict[str, Any]) -> Repository:
        return self.client.load_repository(row["id"])

    def _validate(self, project: Project, record: Repository) -> None:
        super()._validate(project, record)
        self._validate_reference(project, "credential_id", "credentials", record.credential_id)


class Inventories(Resource):
    table_name = "inventories"
    model = Inventory
    not_found = InventoryNotFoundError
    event_type = EventType.INVENTORY

    def _load(self, row: dict[str, Any]) -> Inventory:
        return self.client.load_inventory(row["id"])

    def _validate(self, project: Project, record: Inventory) -> None:
        super()._validate(project, record)
        self._validate_reference(project, "repository_id", "repositories", record.repository_id)
        self._validate_reference(project, "credential_id", "credentials", record.credential_id)
        self._validate_reference(project, "become_id", "credentials", record.become_id)


class Templates(Resource):
    table_name = "templates"
    model = Template
    not_found = TemplateNotFoundError
    event_type = EventType.TEMPLATE

    def _load(self, row: dict[str, Any]) -> Template:
        client = self.client
        record = Template.from_row(row)
        record.repository = client.load_repository(record.repository_id)
        record.inventory = client.load_inventory(record.inventory_id)
        record.environment = client.load_environment(record.environment_id)
        record.surveys = []
        for survey_row in client.table("template_surveys").select(template_id=record.id):
            survey = TemplateSurvey.from_row(survey_row)
            survey.values = [
                TemplateValue.from_row(value_row)
                for value_row in client.table("template_values").select(survey_id=survey.id)
            ]
            record.surveys.append(survey)
        record.vaults = []
        for vault_row in client.table("template_vaults").select(template_id=record.id):
            vault = TemplateVault.from_row(vault_row)
            vault.credential = client.load_credential(vault.credential_id)
            record.vaults.append(vault)
        return record

    def _validate(self, project: Project, record: Template) -> None:
        super()._validate(project, record)
        self._validate_reference(project, "repository_id", "repositories", record.repository_id)
        self._validate_reference(project, "inventory_id", "inventories", record.inventory_id)
        self._validate_reference(project, "environment_id", "environments", record.environment_id)
        for vault in record.vaults:
            if vault.credential is not None:
                vault.credential_id = vault.credential.id
            self._validate_reference(project, "credential_id", "credentials", vault.credential_id)
        self._validate_children(record)

    def _validate_children(self, record: Template) -> None:
        """Reject survey, value or vault ids owned by another template."""
        client = self.client
        surveys = client.table("template_surveys")
        owned = {row["id"] for row in surveys.select(template_id=record.id)}
        for survey in record.surveys:
            row = surveys.get(survey.id)
            if row is not None and row["template_id"] != record.id:
                raise InvalidRecordError("surveys", "does not exist")
            for value in survey.values:
                row = client.table("template_values").get(value.id)
                if row is not None and row["survey_id"] not in owned:
                    raise InvalidRecordError("values", "does not exist")
        for vault in record.vaults:
            row = client.table("template_vaults").get(vault.id)
            if row is not None and row["template_id"] != record.id:
                raise InvalidRecordError("vaults", "does not exist")

    def _write(self, sealed: Template) -> None:
        """Replace surveys, values and vaults with the given collections."""
        super()._write(sealed)
        self._drop_children(sealed.id)
        now = utcnow()
        surveys = self.client.table("template_surveys")
        values = self.client.table("template_values")
        vaults = self.client.table("template_vaults")
        for survey in sealed.surveys:
            survey.template_id = sealed.id
            survey.created_at = survey.created_at or now
            survey.updated_at = now
            surveys.put(survey.id, survey.to_row())
            for value in survey.values:
                value.survey_id = survey.id
                value.created_at = value.created_at or now
                value.updated_at = now
                values.put(value.id, value.to_row())
        for vault in sealed.vaults:
            vault.template_id = sealed.id
            vault.created_at = vault.created_at or now
            vault.updated_at = now
            vaults.put(vault.id, vault.to_row())

    def _remove(self, row: dict[str, Any]) -> None:
        super()._remove(row)
        self._drop_children(row["id"])

    def _drop_children(self, template_id: str) -> None:
        surveys = self.client.table("template_surveys")
        values = self.client.table("template_values")
        for survey in surveys.select(template_id=template_id):
            values.delete_where(survey_id=survey["id"])
        surveys.delete_where(template_id=template_id)
        self.client.table("template_vaults").delete_where(template_id=template_id)
