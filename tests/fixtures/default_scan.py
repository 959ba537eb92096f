"""Configuration scanned by default: its own module."""

from typing import Annotated

from orchard.markers import Autowired, Bean, Component, Configuration, Import
from tests.fixtures.scan_pkg.sub.repos import UserRepo


@Component()
class Clock:
    def now(self) -> str:
        return "12:00"


class Banner:
    def __init__(self, text: str):
        self.text = text


@Import(UserRepo)
@Configuration()
class DefaultScanConfig:
    @Bean()
    def make_banner(self, clock: Annotated[Clock, Autowired(required=False)]) -> Banner:
        return Banner("ready" if clock is None else f"ready at {clock.now()}")
