from retroriff.services.harvester import Harvester, build_harvester


def get_harvester() -> Harvester:
    """Harvester for the configured mode; overridden in tests."""
    return build_harvester()
