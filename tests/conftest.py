from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aggregator.db import build_engine, build_session_factory, close_db, init_db

KIWI_PAGE = """
<html><body>
<div class="list-item">
  <div class="summary">
    <a href="#" onclick="$('#myModal0').modal('show')">Show details</a>
    <p class="prices">€164</p>
  </div>
</div>
<div class="modal fade" id="myModal0">
  <p class="_heading">Outbound Fri, 10 Oct 2025</p>
  <div class="_panel">
    <div class="_panel_body">
      <div class="_head"><small>Aer Lingus EI 337</small></div>
      <div class="_item">
        <div class="c1"><p>2h 20</p></div>
        <div class="c3"><p>06:35</p><p>07:55</p></div>
        <div class="c4"><p>BER Berlin Brandenburg</p><p>DUB Dublin</p></div>
        <div class="clearfix"></div>
        <p class="connect_airport"><span>2h 20 </span> Connection</p>
      </div>
    </div>
    <div class="_panel_body">
      <div class="_head"><small>Iberia Express I2 1882</small></div>
      <div class="_item">
        <div class="c1"><p>2h 35</p></div>
        <div class="c3"><p>10:15</p><p>13:50</p></div>
        <div class="c4"><p>DUB Dublin</p><p>MAD Madrid Barajas</p></div>
      </div>
    </div>
  </div>
  <p class="_heading">Return Fri, 17 Oct 2025</p>
  <div class="_panel">
    <div class="_panel_body">
      <div class="_head"><small>Iberia Express I2 1801</small></div>
      <div class="_item">
        <div class="c1"><p>3h 5</p></div>
        <div class="c3"><p>15:40</p><p>18:45</p></div>
        <div class="c4"><p>MAD Madrid Barajas</p><p>BER Berlin Brandenburg</p></div>
      </div>
    </div>
  </div>
  <div class="_similar">
    <p>Kiwi.com</p>
    <p>€164 <a href="https://www.kiwi.com/en/booking?token=abc123">Book</a></p>
  </div>
</div>
</body></html>
"""

SKYSCANNER_PAGE = """
<html><body>
<div class="list-item">
  <a href="javascript:void(0)" onclick="$('#myModalX').html($('#myModal0').html())">Select</a>
  <p class="prices">€291</p>
  <div class="modal" id="myModal0">
    <p class="_heading">Outbound Sat, 11 Oct 2025</p>
    <div class="_panel">
      <div class="_panel_body">
        <div class="_head"><small>KLM KL1770</small></div>
        <div class="_item">
          <div class="c1"><p>1h 25</p></div>
          <div class="c3"><p>09:00</p><p>10:25</p></div>
          <div class="c4"><p>BER Berlin</p><p>AMS Amsterdam</p></div>
        </div>
      </div>
      <div class="_panel_body">
        <div class="_head"><small>KLM KL1001</small></div>
        <div class="_item">
          <div class="c1"><p>1h 15</p></div>
          <div class="c3"><p>11:30</p><p>11:45</p></div>
          <div class="c4"><p>AMS Amsterdam</p><p>LHR London Heathrow</p></div>
        </div>
      </div>
    </div>
    <div class="_similar">
      <div class="c1"><p>Trip.com</p></div>
      <div class="c2">
        <p>€291 <a href="https://www.skyscanner.net/transport_deeplink/4.0/DE/de-DE/EUR/ctde/1/abc">Select</a></p>
      </div>
    </div>
    <div class="_similar">
      <div class="c1"><p>Mytrip</p></div>
      <div class="c2"><p>€305 <a href="https://www.skyscanner.net/transport_deeplink/4.0/DE/de-DE/EUR/mytr/1/abc">Select</a></p></div>
    </div>
  </div>
</div>
</body></html>
"""

NO_AIRPORT_PAGE = """
<html><body>
<div class="list-item">
  <a href="#" onclick="$('#myModal0').modal('show')">Show details</a>
  <p class="prices">€99</p>
</div>
<div class="modal" id="myModal0">
  <p class="_heading">Outbound Fri, 10 Oct 2025</p>
  <div class="_panel_body">
    <div class="_head"><small>Aer Lingus EI 337</small></div>
    <div class="_item">
      <div class="c1"><p>2h 20</p></div>
      <div class="c3"><p>06:35</p><p>07:55</p></div>
      <div class="c4"><p>Berlin</p><p>Dublin</p></div>
    </div>
  </div>
  <div class="_similar"><p>Kiwi.com</p><p>€99</p></div>
</div>
</body></html>
"""


@pytest.fixture
def kiwi_page_html() -> str:
    return KIWI_PAGE


@pytest.fixture
def skyscanner_page_html() -> str:
    return SKYSCANNER_PAGE


@pytest.fixture
def no_airport_page_html() -> str:
    return NO_AIRPORT_PAGE


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'aggregator_test.db'}")
    await init_db(engine)
    try:
        yield build_session_factory(engine)
    finally:
        await close_db(engine)
