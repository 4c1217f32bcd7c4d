# -*- coding: utf-8 -*-
"""
Pytest configuration and fixtures.
"""
import pytest

from newsletter_parser.cleaner import RuleEngine
from newsletter_parser.footnotes import FootnoteLinkProcessor
from newsletter_parser.pipeline import IncrementalParser

SAMPLE_NEWSLETTER = """<!DOCTYPE html>
<html xmlns:o="urn:schemas-microsoft-com:office:office">
<head>
  <meta charset="utf-8">
  <title>Weekly Digest</title>
  <style>body { margin: 0; } .btn { color: red; }</style>
</head>
<body onload="init()">
  <div class="preview-text" style="display:none">Top stories from this week in tech&nbsp;&#847;&zwnj;</div>
  <!--[if mso]><table><tr><td>Outlook only</td></tr></table><![endif]-->
  <img src="https://track.example.com/open.gif?id=42" width="1" height="1" alt="">
  <table role="presentation" cellpadding="0" width="100%">
    <tr>
      <td style="padding: 20px" data-block="intro">
        <h1>Weekly Digest</h1>
        <p class="MsoNormal">Read the <a href="https://example.com/story?utm_source=newsletter&amp;id=7">full story</a> on our site.<o:p></o:p></p>
        <p>Then <a href="javascript:alert(1)" onclick="steal()">click here</a> for nothing.</p>
        <img src="https://cdn.example.com/photos/data-science.png" width="600" height="300" alt="Chart" data-id="7">
      </td>
    </tr>
  </table>
  <div class="sponsored-content"><p>Buy our product today!</p></div>
  <script>trackOpen();</script>
  <footer><p>Sent to you by Example Inc.</p></footer>
  <p>Bye <a href="https://example.com/unsubscribe?u=1">Unsubscribe</a></p>
</body>
</html>
"""


@pytest.fixture
def sample_newsletter():
    """Realistic newsletter HTML with tracking, ads, Office markup and links."""
    return SAMPLE_NEWSLETTER


@pytest.fixture
def engine():
    """Rule engine with every rule enabled."""
    return RuleEngine(disabled_rules=[])


@pytest.fixture
def parser():
    """Fresh incremental parser instance."""
    return IncrementalParser()


@pytest.fixture
def processor():
    """Fresh footnote link processor."""
    return FootnoteLinkProcessor()


@pytest.fixture
def footnote_html():
    """Single tracked link inside a sentence."""
    return 'Visit <a href="https://example.com/page?utm_source=x">our site</a> today.'
