"""Main script for running RiskScope interactively."""

import asyncio

from dotenv import load_dotenv

from .domain.errors import RiskScopeError
from .domain.models.claim import ClaimCheckRequest
from .domain.models.verification import MetricDraft
from .infrastructure.dependencies import ServiceContainer


async def main():
    """Look up domains or check revenue claims from the terminal."""
    load_dotenv()
    print("RiskScope - site risk scores and revenue claim checks")
    print("-----------------------------------------------------")
    print("Enter a domain, or 'claim <app id or url> <monthly revenue>'")
    print("Add readings with 'metrics <product id> <source> <metric name> <value> [verified]'")

    container = ServiceContainer()
    await container.startup()
    sites = container.get_site_risk_service()
    claims = container.get_claim_check_service()

    try:
        while True:
            line = input("\n> ").strip()
            if line.lower() in ("quit", "exit", "q"):
                break
            if not line:
                continue

            try:
                parts = line.split()
                if parts[0] == "claim" and len(parts) == 3:
                    identifier, value = parts[1], parts[2]
                    request = ClaimCheckRequest(
                        primary_url=identifier if "/" in identifier else None,
                        ios_app_id=identifier if identifier.isdigit() else None,
                        android_package=identifier if "." in identifier and "/" not in identifier else None,
                        claimed_value=float(value),
                    )
                    result = await claims.check_claim(request)
                    assessment = result.assessment
                    print(f"\nVerdict: {assessment.verdict.value}")
                    print(f"Confidence: {assessment.confidence:.0%}")
                    print(f"\n{assessment.notes}")
                    print(f"Product id: {result.product.id}")
                elif parts[0] == "metrics" and len(parts) in (5, 6):
                    product_id, source, metric_name, value = parts[1:5]
                    draft = MetricDraft(
                        source=source,
                        metric_name=metric_name,
                        metric_value=float(value),
                        is_verified=parts[5:] == ["verified"],
                    )
                    stored = await claims.record_metrics(product_id, [draft])
                    print(f"\nRecorded {len(stored)} metric(s) for product {product_id}")
                else:
                    view = await sites.lookup_site(line)
                    print(f"\n{view.site.normalized_domain}: {view.site.risk_score} ({view.site.risk_level.value})")
                    for i, signal in enumerate(view.signals, 1):
                        print(f"{i}. [{signal.source.value}] {signal.type} +{signal.severity}")
            except (RiskScopeError, ValueError) as e:
                print(f"\nError: {e}")

    finally:
        await container.shutdown()


def run():
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
