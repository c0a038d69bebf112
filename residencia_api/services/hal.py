# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import quote, urljoin, urlencode

from residencia_api.models.responses import HalLink

PROBLEM_BASE_URL = "https://api.residencia.app/problems"


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")


class LicenseAffordanceBuilder:
    """Conditional affordance links for license resources."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    @staticmethod
    def contract_licenses_path(contract_id: str) -> str:
        return f"/api/licenses?{urlencode({'contractId': contract_id})}"

    def build_validation_affordances(self, contract_id: str, order_id: str, is_valid: bool) -> Dict[str, HalLink]:
        """Links for a validation verdict; ``issue`` only when issuance would pass."""
        links = {
            'self': self.link_builder.build_link(
                "/api/licenses/validate",
                method="POST",
                content_type="application/json",
                title="Validate license issuance"
            ),
            'licenses': self.link_builder.build_collection_link(self.contract_licenses_path(contract_id))
        }
        if is_valid:
            links['issue'] = self.link_builder.build_link(
                "/api/licenses",
                method="POST",
                content_type="application/json",
                title=f"Issue license for order {order_id}"
            )
        return links

    def build_license_affordances(self, contract_id: str) -> Dict[str, HalLink]:
        """Links for a single license."""
        return {
            'collection': self.link_builder.build_collection_link(self.contract_licenses_path(contract_id)),
            'validate': self.link_builder.build_link(
                "/api/licenses/validate",
                method="POST",
                content_type="application/json",
                title="Validate a new issuance"
            )
        }


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = LicenseAffordanceBuilder(base_url)

    @staticmethod
    def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
        return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        """Attach ``_links`` to a resource payload."""
        response = dict(data)
        response['_links'] = self._dump_links(links)
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        embedded_name: str = "items"
    ) -> Dict[str, Any]:
        """Build a HAL collection response."""
        return {
            'total': len(items),
            '_links': self._dump_links({'self': self.link_builder.build_self_link(collection_path)}),
            '_embedded': {
                embedded_name: items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Any]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URL}/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type in ("validation-error", "license-validation-failed"):
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )

        error_response['_links'] = self._dump_links(links)
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_validation_result(
        self,
        result: Dict[str, Any],
        contract_id: str,
        order_id: str
    ) -> Dict[str, Any]:
        """Format a validation verdict (``isValid``/``errorMessages``) with HAL links."""
        links = self.builder.affordance_builder.build_validation_affordances(
            contract_id, order_id, result['isValid']
        )
        return self.builder.build_resource_response(result, links)

    def format_license(self, license: Dict[str, Any]) -> Dict[str, Any]:
        """Format a license with HAL links."""
        links = self.builder.affordance_builder.build_license_affordances(license['contractId'])
        return self.builder.build_resource_response(license, links)

    def format_license_collection(self, licenses: List[Dict[str, Any]], contract_id: str) -> Dict[str, Any]:
        """Format the licenses of a contract with HAL links."""
        return self.builder.build_collection_response(
            [self.format_license(license) for license in licenses],
            LicenseAffordanceBuilder.contract_licenses_path(contract_id),
            embedded_name="licenses"
        )

    def format_invoice_validation(self, result: Dict[str, Any], order_id: str) -> Dict[str, Any]:
        """Format a verdict on invoice data with links to the order's billing summary."""
        links = {
            'self': self.builder.link_builder.build_link(
                "/api/invoices/validate",
                method="POST",
                content_type="application/json",
                title="Validate invoice data"
            ),
            'order': self.builder.link_builder.build_link(
                f"/api/orders/{quote(order_id, safe='')}/billing",
                title="Order billing summary"
            )
        }
        return self.builder.build_resource_response(result, links)

    def format_order_billing(self, summary: Dict[str, Any]) -> Dict[str, Any]:
        """Format an order's billing summary with a self link."""
        path = f"/api/orders/{quote(summary['orderId'], safe='')}/billing"
        return self.builder.build_resource_response(
            summary,
            {'self': self.builder.link_builder.build_self_link(path)}
        )

    def format_health(self, health: Dict[str, Any]) -> Dict[str, Any]:
        """Format the health report with a self link."""
        return self.builder.build_resource_response(
            health,
            {'self': self.builder.link_builder.build_self_link("/api/healthz")}
        )

    def format_license_validation_error(self, error_messages: List[str], instance: str) -> Dict[str, Any]:
        """Format an issuance rejected by the business rules."""
        response = self.builder.build_error_response(
            "license-validation-failed",
            "License Validation Failed",
            422,
            error_messages[0] if error_messages else "License validation failed",
            instance,
            list(error_messages)
        )
        response['isValid'] = False
        response['errorMessages'] = list(error_messages)
        return response

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a server error response."""
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
