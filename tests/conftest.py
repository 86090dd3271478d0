# tests/conftest.py
"""
Pytest configuration and shared fixtures for ScormLens tests

Packages are built in memory; nothing here touches a real course.
"""
import io
import zipfile
from typing import Callable, Dict, Iterable, Union

import pytest


SCORM_2004_MANIFEST = """<?xml version="1.0" encoding="UTF-8"?>
<manifest identifier="course_2004" version="1.0"
    xmlns="http://www.imsglobal.org/xsd/imscp_v1p1"
    xmlns:adlcp="http://www.adlnet.org/xsd/adlcp_v1p3"
    xmlns:imsss="http://www.imsglobal.org/xsd/imsss"
    xmlns:lom="http://ltsc.ieee.org/xsd/LOM">
  <metadata>
    <schema>ADL SCORM</schema>
    <schemaversion>2004 3rd Edition</schemaversion>
    <lom:lom>
      <lom:general>
        <lom:title><lom:string language="en">Safety Basics</lom:string></lom:title>
        <lom:description><lom:string language="en">Workplace safety primer</lom:string></lom:description>
        <lom:keyword><lom:string>safety</lom:string></lom:keyword>
        <lom:keyword><lom:string>training</lom:string></lom:keyword>
        <lom:keyword><lom:string>safety</lom:string></lom:keyword>
      </lom:general>
      <lom:educational>
        <lom:typicalLearningTime><lom:duration>PT30M</lom:duration></lom:typicalLearningTime>
      </lom:educational>
    </lom:lom>
  </metadata>
  <organizations default="org_1">
    <organization identifier="org_1">
      <title>Safety Course</title>
      <item identifier="item_a" identifierref="res_1">
        <title>Introduction</title>
      </item>
      <item identifier="item_b">
        <title>Procedures</title>
        <item identifier="item_c" identifierref="res_1">
          <title>Fire Drill</title>
          <imsss:sequencing>
            <imsss:sequencingRules>
              <imsss:preConditionRule>
                <imsss:ruleConditions>
                  <imsss:ruleCondition condition="satisfied"/>
                </imsss:ruleConditions>
                <imsss:ruleAction action="skip"/>
              </imsss:preConditionRule>
            </imsss:sequencingRules>
          </imsss:sequencing>
        </item>
      </item>
    </organization>
  </organizations>
  <resources>
    <resource identifier="res_1" type="webcontent" adlcp:scormType="sco" href="index.html">
      <file href="index.html"/>
      <file href="scripts/app.js"/>
      <file href="index.html"/>
    </resource>
  </resources>
</manifest>
"""


def manifest_12(href: str = "index.html", title: str = "Intro Course", extra: str = "") -> str:
    """A small SCORM 1.2 manifest with one item and one resource."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<manifest identifier="course_12" version="1.0"
    xmlns="http://www.imsproject.org/xsd/imscp_rootv1p1p2"
    xmlns:adlcp="http://www.adlnet.org/xsd/adlcp_rootv1p2">
  <metadata>
    <schema>ADL SCORM</schema>
    <schemaversion>1.2</schemaversion>
  </metadata>
  <organizations default="org_1">
    <organization identifier="org_1">
      <title>{title}</title>
      <item identifier="item_1" identifierref="res_1">
        <title>Lesson 1</title>
      </item>
    </organization>
  </organizations>
  <resources>
    <resource identifier="res_1" type="webcontent" adlcp:scormtype="sco" href="{href}">
      <file href="{href}"/>
    </resource>
  </resources>
  {extra}
</manifest>
"""


def build_zip(files: Dict[str, Union[str, bytes]], dirs: Iterable[str] = ()) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for d in dirs:
            zf.writestr(d if d.endswith("/") else d + "/", b"")
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


CORRUPT_PAYLOAD = b"VIDEODATA" * 10


def build_corrupt_zip(files: Dict[str, Union[str, bytes]], victim: str) -> bytes:
    """Stored (uncompressed) archive whose victim entry fails its CRC check on read."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_STORED) as zf:
        for name, content in files.items():
            zf.writestr(name, CORRUPT_PAYLOAD if name == victim else content)
    data = buffer.getvalue()
    offset = data.index(CORRUPT_PAYLOAD)
    return data[:offset] + b"X" + data[offset + 1:]


def read_zip(data: bytes) -> Dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {info.filename: zf.read(info) for info in zf.infolist() if not info.is_dir()}


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep the user's ~/.scormlens and SCORMLENS_* variables out of tests"""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    for var in ("SCORMLENS_MAX_WORKERS", "SCORMLENS_MATERIALIZE_MEDIA", "SCORMLENS_MANIFEST_NAME"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def make_zip() -> Callable[..., bytes]:
    """Build an in-memory ZIP from a {name: content} dict"""
    return build_zip


@pytest.fixture
def scorm_2004_package(make_zip) -> bytes:
    """Healthy SCORM 2004 package"""
    return make_zip({
        "imsmanifest.xml": SCORM_2004_MANIFEST,
        "index.html": "<html><body><h1>Welcome</h1></body></html>",
        "scripts/app.js": "var course = {};",
        "scripts/scormdriver.js": "// runtime",
        "media/intro.mp4": b"\x00\x00\x00\x18ftypmp42",
        "media/intro.vtt": "WEBVTT\n\n00:00.000 --> 00:01.000\nHello",
        "media/theme.mp3": b"ID3\x03",
        "images/logo.png": b"\x89PNG\r\n",
        "styles/site.css": "body { margin: 0; }",
    }, dirs=["media", "scripts"])


@pytest.fixture
def scorm_12_package(make_zip) -> bytes:
    """Healthy SCORM 1.2 package"""
    return make_zip({
        "imsmanifest.xml": manifest_12(),
        "index.html": "<html><body>Hello</body></html>",
        "scorm.js": "// runtime",
    })
