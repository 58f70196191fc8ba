"""SMART room document parser.

Room XML as exported by SMART (only the parts the renderer needs):

  <Room>
    <width>5</width>
    <height>3</height>
    <States>
      <State condition="Default">
        <Arg>0</Arg>
        <GFXset>0A</GFXset>
        <LevelData>
          <Layer1>
            <Screen X="00" Y="00">  256 hex words  </Screen>
          </Layer1>
          <Layer2> ... </Layer2>           (optional)
        </LevelData>
        <BGData>
          <Data Type="DECOMP">
            <SOURCE>  1024 or 2048 hex words  </SOURCE>
            <DEST>...</DEST>
          </Data>
        </BGData>
      </State>
    </States>
  </Room>

Numbers are hexadecimal without prefix. Any field may be written either as
an attribute or as a child element of the same name.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from .errors import EmptyRoomStateList, MalformedDocument, MalformedNumericField

_HEX_RE = re.compile(r'[0-9A-Fa-f]+')

BG_DECOMP = 'DECOMP'


@dataclass
class Screen:
    x: int
    y: int
    data: list[int] = field(default_factory=list)


@dataclass
class LevelData:
    layer1: list[Screen] = field(default_factory=list)
    layer2: list[Screen] = field(default_factory=list)


@dataclass
class BGDataBlock:
    type: str = ''
    source: list[int] = field(default_factory=list)
    dest: str = ''
    size: str = ''


@dataclass
class RoomState:
    condition: str
    arg: int
    gfx_set: int
    level_data: LevelData
    bg_data: list[BGDataBlock] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f'{self.condition}: {self.arg}'


@dataclass
class Room:
    width: int
    height: int
    states: list[RoomState]


# ============================================================================
# Field decoding
# ============================================================================

def parse_hex(text: str, name: str) -> int:
    """Parse a hexadecimal scalar field."""
    value = (text or '').strip()
    if not _HEX_RE.fullmatch(value):
        raise MalformedNumericField(f"Field '{name}' is not hexadecimal: {text!r}")
    return int(value, 16)


def parse_hex_words(text: str, name: str, bits: int = 16) -> list[int]:
    """Parse a whitespace-separated list of hex words of at most `bits` bits."""
    limit = 1 << bits
    words = []
    for token in (text or '').split():
        if not _HEX_RE.fullmatch(token):
            raise MalformedNumericField(f"Field '{name}' has a non-hex word: {token!r}")
        word = int(token, 16)
        if word >= limit:
            raise MalformedNumericField(
                f"Field '{name}' word {token} does not fit in {bits} bits")
        words.append(word)
    return words


def _field(elem: ET.Element, name: str) -> str | None:
    """Value of an attribute or, failing that, a child element's text."""
    if name in elem.attrib:
        return elem.attrib[name]
    child = elem.find(name)
    if child is not None:
        return child.text or ''
    return None


def _required(elem: ET.Element, name: str) -> str:
    value = _field(elem, name)
    if value is None:
        raise MalformedDocument(f"<{elem.tag}> is missing '{name}'")
    return value


def _required_child(elem: ET.Element, name: str) -> ET.Element:
    child = elem.find(name)
    if child is None:
        raise MalformedDocument(f"<{elem.tag}> is missing <{name}>")
    return child


# ============================================================================
# Structure
# ============================================================================

def _parse_screens(layer: ET.Element | None) -> list[Screen]:
    if layer is None:
        return []
    screens = []
    for elem in layer.findall('Screen'):
        screens.append(Screen(
            x=parse_hex(_required(elem, 'X'), 'Screen/X'),
            y=parse_hex(_required(elem, 'Y'), 'Screen/Y'),
            data=parse_hex_words(elem.text, 'Screen'),
        ))
    return screens


def _parse_bg_data(elem: ET.Element) -> list[BGDataBlock]:
    blocks = []
    for data in elem.findall('Data'):
        blocks.append(BGDataBlock(
            type=_field(data, 'Type') or '',
            source=parse_hex_words(_field(data, 'SOURCE'), 'BGData/SOURCE', bits=32),
            dest=_field(data, 'DEST') or '',
            size=_field(data, 'SIZE') or '',
        ))
    return blocks


def _parse_state(elem: ET.Element) -> RoomState:
    level = _required_child(elem, 'LevelData')
    arg = _field(elem, 'Arg')
    return RoomState(
        condition=_required(elem, 'condition'),
        arg=parse_hex(arg, 'Arg') if arg is not None else 0,
        gfx_set=parse_hex(_required(elem, 'GFXset'), 'GFXset'),
        level_data=LevelData(
            layer1=_parse_screens(_required_child(level, 'Layer1')),
            layer2=_parse_screens(level.find('Layer2')),
        ),
        bg_data=_parse_bg_data(_required_child(elem, 'BGData')),
    )


def parse_room(data: bytes) -> Room:
    """Parse a room document into a Room."""
    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise MalformedDocument(f"Room document is not UTF-8: {e}") from e
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedDocument(f"Unable to parse room XML: {e}") from e

    states_elem = _required_child(root, 'States')
    states = [_parse_state(s) for s in states_elem.findall('State')]
    if not states:
        raise EmptyRoomStateList("Room has an empty list of states")

    return Room(
        width=parse_hex(_required(root, 'width'), 'width'),
        height=parse_hex(_required(root, 'height'), 'height'),
        states=states,
    )
