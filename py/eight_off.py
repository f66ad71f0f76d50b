import copy
import json
import logging
import random
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, override

logger = logging.getLogger(__name__)

NUM_COLUMNS = 8
NUM_FREE_CELLS = 8
NUM_FOUNDATIONS = 4
DEAL_ROUNDS = 6
DEALT_FREE_CELLS = 4
CARDS_PER_SUIT = 13

WIN_MESSAGE = "Congratulations, you won!"
LOSS_MESSAGE = "No more moves are possible. Game over."


class EightOffError(Exception):
    """Base class for errors raised by the Eight Off engine."""


class InvalidMoveError(EightOffError, ValueError):
    """Raised by :meth:`EightOff.step` for an action that is not currently legal."""


class DeckExhaustedError(EightOffError, RuntimeError):
    """Raised when drawing from an empty deck. Never expected during a normal deal."""


class Color(str, Enum):
    RED = "RED"
    BLACK = "BLACK"


class Suit(str, Enum):
    CLUB = "CLUB"
    DIAMOND = "DIAMOND"
    HEART = "HEART"
    SPADE = "SPADE"

    @property
    def color(self) -> Color:
        if self in (Suit.HEART, Suit.DIAMOND):
            return Color.RED
        return Color.BLACK

    @override
    def __str__(self) -> str:
        return {
            Suit.CLUB: "♣",
            Suit.DIAMOND: "♦",
            Suit.HEART: "♥",
            Suit.SPADE: "♠",
        }[self]


class Number(str, Enum):
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @property
    def int_repr(self) -> int:
        return list(Number).index(self) + 1

    @staticmethod
    def from_int(rank: int) -> "Number":
        if not 1 <= rank <= CARDS_PER_SUIT:
            msg = f"Rank {rank} is outside 1..{CARDS_PER_SUIT}"
            raise ValueError(msg)
        return list(Number)[rank - 1]

    @override
    def __str__(self) -> str:
        return self.value

    @override
    def __repr__(self) -> str:
        return self.value

    def __int__(self) -> int:
        return self.int_repr


@dataclass(frozen=True)
class Card:
    suit: Suit
    number: Number
    face_up: bool = False

    @property
    def rank(self) -> int:
        return int(self.number)

    def as_jsonable_dict(self) -> dict:
        return {
            "suit": self.suit.value,
            "rank": self.number.value,
            "color": self.suit.color.value,
        }

    @override
    def __str__(self) -> str:
        return f"{self.number}{self.suit}"

    @override
    def __repr__(self) -> str:
        return f"{self.number}{self.suit}"

    @override
    def __eq__(self, other: Any) -> bool:  # pyright: ignore [reportAny]
        if not isinstance(other, Card):
            return False
        return self.suit == other.suit and self.number == other.number

    @override
    def __hash__(self) -> int:
        return hash((self.suit, self.number))


type HidableCard = Card | None


def full_deck() -> list[Card]:
    return [Card(suit, number) for suit in Suit for number in Number]


class Stack:
    def __init__(self, initial_cards: Iterable[Card] | None = None):
        self.cards: list[Card] = list(initial_cards or [])

    def as_jsonable_dict(self) -> dict:
        return {
            "cards": [card.as_jsonable_dict() for card in self.cards],
        }

    @override
    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.cards}"

    def add_to_top(self, card: Card) -> None:
        self.cards.append(card)

    def add_multiple_to_top(self, cards: Iterable[Card]) -> None:
        self.cards.extend(cards)

    def inspect_top(self) -> HidableCard:
        if len(self.cards) == 0:
            return None
        return self.cards[-1]

    def inspect_all(self) -> list[Card]:
        return self.cards.copy()

    def get_from_top(self) -> HidableCard:
        if len(self.cards) == 0:
            return None
        return self.cards.pop()

    def get_from_bottom(self) -> HidableCard:
        if len(self.cards) == 0:
            return None
        return self.cards.pop(0)

    def get_multiple_from_top(self, count: int) -> list[Card]:
        """Remove ``count`` cards from the top, returned bottom-to-top."""
        assert 0 <= count <= len(self.cards)  # noqa: S101
        if count == 0:
            return []
        taken = self.cards[-count:]
        del self.cards[-count:]
        return taken

    def contains(self, card: Card) -> bool:
        return card in self.cards

    def __len__(self) -> int:
        return len(self.cards)


class Deck(Stack):
    @classmethod
    def new_shuffled(cls, rng: random.Random | None = None) -> "Deck":
        deck = cls(full_deck())
        (rng or random.Random()).shuffle(deck.cards)
        return deck

    def draw(self) -> Card:
        card = self.get_from_bottom()
        if card is None:
            msg = "Cannot draw from an empty deck"
            raise DeckExhaustedError(msg)
        return card

    def remaining(self) -> int:
        return len(self)


class TableauColumn(Stack):
    def add_forced(self, card: Card) -> None:
        # deal and undo only
        self.add_to_top(card)

    def can_accept(self, card: Card) -> bool:
        top_card = self.inspect_top()
        if top_card is None:
            return card.number == Number.KING
        return top_card.suit == card.suit and int(top_card.number) == int(card.number) + 1

    def add(self, card: Card) -> bool:
        if not self.can_accept(card):
            return False
        self.add_to_top(card)
        return True

    def run_start_index(self) -> int:
        """Index of the bottom card of the same-suit descending run ending at the top.

        Returns ``-1`` for an empty column.
        """
        start = len(self.cards) - 1
        for idx in range(len(self.cards) - 2, -1, -1):
            lower = self.cards[idx]
            upper = self.cards[idx + 1]
            if lower.suit == upper.suit and int(lower.number) == int(upper.number) + 1:
                start = idx
            else:
                break
        return start

    def movable_stacks(self) -> list[list[Card]]:
        start = self.run_start_index()
        if start < 0:
            return []
        return [self.cards[idx:] for idx in range(start, len(self.cards))]

    def is_movable_stack(self, cards: Sequence[Card]) -> bool:
        if len(cards) == 0 or len(cards) > len(self.cards):
            return False
        start = len(self.cards) - len(cards)
        return start >= self.run_start_index() and self.cards[start:] == list(cards)


class FoundationPile(Stack):
    def __init__(self, suit: Suit):
        super().__init__()
        self.nominal_suit = suit
        self.suit = suit

    @override
    def as_jsonable_dict(self) -> dict:
        return {
            "suit": self.suit.value,
            "cards": [card.as_jsonable_dict() for card in self.cards],
        }

    def can_accept(self, card: Card) -> bool:
        top_card = self.inspect_top()
        if top_card is None:
            return card.number == Number.ACE
        return card.suit == self.suit and int(card.number) == int(top_card.number) + 1

    def add(self, card: Card) -> bool:
        if len(self.cards) == 0 and card.number == Number.ACE:
            self.suit = card.suit
            self.add_to_top(card)
            return True
        if not self.can_accept(card):
            return False
        self.add_to_top(card)
        return True

    @override
    def get_from_top(self) -> HidableCard:
        card = super().get_from_top()
        if len(self.cards) == 0:
            self.suit = self.nominal_suit
        return card

    def is_complete(self) -> bool:
        return len(self.cards) == CARDS_PER_SUIT


class FreeCellBank:
    def __init__(self, size: int = NUM_FREE_CELLS):
        self.slots: list[HidableCard] = [None] * size

    def as_jsonable_dict(self) -> dict:
        return {
            "slots": [card.as_jsonable_dict() if card is not None else None for card in self.slots],
        }

    @override
    def __str__(self) -> str:
        return f"FreeCellBank: {self.slots}"

    def get(self, index: int) -> HidableCard:
        return self.slots[index]

    def put(self, index: int, card: Card) -> None:
        assert self.slots[index] is None  # noqa: S101
        self.slots[index] = card

    def clear(self, index: int) -> HidableCard:
        card = self.slots[index]
        self.slots[index] = None
        return card

    def is_empty(self, index: int) -> bool:
        return self.slots[index] is None

    def index_of(self, card: Card) -> int:
        for idx, held in enumerate(self.slots):
            if held == card:
                return idx
        return -1

    def first_empty(self) -> int:
        for idx, held in enumerate(self.slots):
            if held is None:
                return idx
        return -1

    def empty_count(self) -> int:
        return sum(1 for held in self.slots if held is None)

    def occupied(self) -> list[tuple[int, Card]]:
        return [(idx, held) for idx, held in enumerate(self.slots) if held is not None]

    def inspect_all(self) -> list[HidableCard]:
        return self.slots.copy()

    def __len__(self) -> int:
        return len(self.slots)


class LocationKind(str, Enum):
    FREE_CELL = "CELL"
    FOUNDATION = "FOUN"
    TABLEAU = "TABL"


class Location(str, Enum):
    CELL_1 = "CELL_1"  # FREE CELL
    CELL_2 = "CELL_2"
    CELL_3 = "CELL_3"
    CELL_4 = "CELL_4"
    CELL_5 = "CELL_5"
    CELL_6 = "CELL_6"
    CELL_7 = "CELL_7"
    CELL_8 = "CELL_8"
    FOUNDATION_1 = "FOUN_1"
    FOUNDATION_2 = "FOUN_2"
    FOUNDATION_3 = "FOUN_3"
    FOUNDATION_4 = "FOUN_4"
    TABLEAU_1 = "TABL_1"
    TABLEAU_2 = "TABL_2"
    TABLEAU_3 = "TABL_3"
    TABLEAU_4 = "TABL_4"
    TABLEAU_5 = "TABL_5"
    TABLEAU_6 = "TABL_6"
    TABLEAU_7 = "TABL_7"
    TABLEAU_8 = "TABL_8"

    @property
    def kind(self) -> LocationKind:
        return LocationKind(self.value.split("_")[0])

    @property
    def position(self) -> int:
        return int(self.value.split("_")[1]) - 1

    @staticmethod
    def free_cells() -> list["Location"]:
        return [loc for loc in Location if loc.kind == LocationKind.FREE_CELL]

    @staticmethod
    def foundations() -> list["Location"]:
        return [loc for loc in Location if loc.kind == LocationKind.FOUNDATION]

    @staticmethod
    def tableaus() -> list["Location"]:
        return [loc for loc in Location if loc.kind == LocationKind.TABLEAU]

    def describe(self) -> str:
        if self.kind == LocationKind.FREE_CELL:
            return f"free cell {self.position + 1}"
        if self.kind == LocationKind.FOUNDATION:
            return f"foundation {self.position + 1}"
        return f"column {self.position + 1}"


class EightOffState(str, Enum):
    PLAYING = "PLAYING"
    WON = "WON"
    LOST = "LOST"


@dataclass(frozen=True)
class MoveRecord:
    card: Card  # bottom-most card for stack moves
    origin: Location
    destination: Location
    num_cards: int = 1

    def __post_init__(self) -> None:
        if self.origin.kind == LocationKind.FOUNDATION:
            msg = f"A move cannot originate from {self.origin.value}"
            raise ValueError(msg)
        if self.num_cards < 1:
            msg = f"A move must carry at least one card, got {self.num_cards}"
            raise ValueError(msg)

    @override
    def __str__(self) -> str:
        return f"{self.card} x{self.num_cards}: {self.origin.value} -> {self.destination.value}"

    def as_jsonable_dict(self) -> dict:
        return {
            "card": self.card.as_jsonable_dict(),
            "origin": self.origin.value,
            "destination": self.destination.value,
            "num_cards": self.num_cards,
        }


class MoveHistory:
    def __init__(self) -> None:
        self.records: list[MoveRecord] = []

    def push(self, record: MoveRecord) -> None:
        self.records.append(record)

    def pop(self) -> MoveRecord | None:
        if len(self.records) == 0:
            return None
        return self.records.pop()

    def peek(self) -> MoveRecord | None:
        if len(self.records) == 0:
            return None
        return self.records[-1]

    def inspect_all(self) -> list[MoveRecord]:
        return self.records.copy()

    def __iter__(self) -> Iterator[MoveRecord]:
        return iter(self.records.copy())

    def __len__(self) -> int:
        return len(self.records)


@dataclass(unsafe_hash=True, eq=True)
class Action:
    from_location: Location
    to_location: Location
    change_index: int = 0  # origin column index of the bottom card, stack moves only

    @override
    def __str__(self) -> str:
        return f"{self.from_location.value} ({self.change_index}) -> {self.to_location.value}"

    @override
    def __repr__(self) -> str:
        return self.__str__()


@dataclass(frozen=True)
class Hint:
    from_location: Location
    to_location: Location
    card: Card
    num_cards: int = 1
    change_index: int = 0
    unlocks: HidableCard = None

    @override
    def __str__(self) -> str:
        if self.num_cards > 1:
            what = f"the run from {self.card}"
        else:
            what = f"the {self.card}"
        if self.to_location.kind == LocationKind.FOUNDATION:
            target = "a foundation"
        elif self.to_location.kind == LocationKind.FREE_CELL:
            target = "a free cell"
        else:
            target = self.to_location.describe()
        text = f"Move {what} ({self.from_location.describe()}) to {target}"
        if self.unlocks is not None:
            text += f" to free the {self.unlocks}"
        return text + "."

    def as_action(self) -> Action:
        return Action(self.from_location, self.to_location, change_index=self.change_index)


@dataclass(frozen=True, kw_only=True)
class Render:
    state: str
    tableaus: tuple[tuple[Card, ...], ...]
    free_cells: tuple[HidableCard, ...]
    foundations: tuple[HidableCard, ...]  # top card on each foundation
    foundation_suits: tuple[Suit, ...]
    history_depth: int

    def asdict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "tableaus": self.tableaus,
            "free_cells": self.free_cells,
            "foundations": self.foundations,
            "foundation_suits": self.foundation_suits,
            "history_depth": self.history_depth,
        }


class EightOff:
    """Eight Off solitaire: eight same-suit columns, eight free cells, four foundations.

    Moves take the card (or run of cards) being moved and report success as a
    bool. A rejected move leaves the board untouched. Every accepted move
    pushes exactly one :class:`MoveRecord` that :meth:`undo` can reverse.
    """

    def __init__(self, seed: int | None = None) -> None:
        self.new_game(seed)

    def new_game(self, seed: int | None = None) -> None:
        self.seed = seed
        self.deck = Deck.new_shuffled(random.Random(seed))
        self._clear_board()

        for _ in range(DEAL_ROUNDS):
            for tableau in self.tableaus:
                card = replace(self.deck.draw(), face_up=True)
                tableau.add_forced(card)
        for cell_idx in range(DEALT_FREE_CELLS):
            card = replace(self.deck.draw(), face_up=True)
            self.cells.put(cell_idx, card)
        assert len(self.deck) == 0  # noqa: S101

        self._rebuild_location_index()
        logger.info("Dealt a new Eight Off game (seed=%s)", seed)

    def _clear_board(self) -> None:
        self.tableaus = [TableauColumn() for _ in range(NUM_COLUMNS)]
        self.cells = FreeCellBank()
        self.foundations = [FoundationPile(suit) for suit in Suit]
        self.history = MoveHistory()
        self.state = EightOffState.PLAYING
        self._locations: dict[Card, Location] = {}

    def _rebuild_location_index(self) -> None:
        self._locations = {}
        for tableau_idx, tableau in enumerate(self.tableaus):
            for card in tableau.cards:
                self._locations[card] = Location.tableaus()[tableau_idx]
        for cell_idx, card in self.cells.occupied():
            self._locations[card] = Location.free_cells()[cell_idx]
        for foundation_idx, foundation in enumerate(self.foundations):
            for card in foundation.cards:
                self._locations[card] = Location.foundations()[foundation_idx]

    def arrange(
        self,
        tableaus: Sequence[Sequence[Card]],
        free_cells: Sequence[HidableCard] | None = None,
        foundations: Sequence[Sequence[Card]] | None = None,
        *,
        strict: bool = True,
    ) -> None:
        """Replace the board with an explicit layout and clear the history.

        Columns and foundations are given bottom-to-top. Missing trailing
        columns, cells and foundations are empty. With ``strict`` the layout
        must hold the full 52-card set.
        """
        free_cells = list(free_cells or [])
        foundations = list(foundations or [])
        if len(tableaus) > NUM_COLUMNS or len(free_cells) > NUM_FREE_CELLS or len(foundations) > NUM_FOUNDATIONS:
            msg = "Layout has more columns, free cells or foundations than the board"
            raise ValueError(msg)

        cards = [card for column in tableaus for card in column]
        cards.extend(card for card in free_cells if card is not None)
        cards.extend(card for pile in foundations for card in pile)
        if len(set(cards)) != len(cards):
            msg = "Layout contains duplicate cards"
            raise ValueError(msg)
        if strict and len(cards) != len(Suit) * CARDS_PER_SUIT:
            msg = f"Layout holds {len(cards)} cards, expected {len(Suit) * CARDS_PER_SUIT}"
            raise ValueError(msg)

        piles = [FoundationPile(suit) for suit in Suit]
        for foundation, pile in zip(piles, foundations, strict=False):
            for card in pile:
                if not foundation.add(replace(card, face_up=True)):
                    msg = f"{card} cannot be placed on {foundation}"
                    raise ValueError(msg)

        self._clear_board()
        self.deck = Deck()
        self.foundations = piles
        for tableau, column in zip(self.tableaus, tableaus, strict=False):
            for card in column:
                tableau.add_forced(replace(card, face_up=True))
        for cell_idx, card in enumerate(free_cells):
            if card is not None:
                self.cells.put(cell_idx, replace(card, face_up=True))
        self._rebuild_location_index()

    def columns(self) -> list[list[Card]]:
        return [tableau.inspect_all() for tableau in self.tableaus]

    def free_cell_cards(self) -> list[HidableCard]:
        return self.cells.inspect_all()

    def foundation_cards(self) -> list[list[Card]]:
        return [foundation.inspect_all() for foundation in self.foundations]

    def locate(self, card: Card) -> Location | None:
        return self._locations.get(card)

    def _movable_origin(self, card: Card) -> Location | None:
        location = self.locate(card)
        if location is None:
            logger.debug("Rejected %s: card is not on the board", card)
            return None
        if location.kind == LocationKind.FOUNDATION:
            logger.debug("Rejected %s: cards never leave a foundation", card)
            return None
        if location.kind == LocationKind.TABLEAU and self.tableaus[location.position].inspect_top() != card:
            logger.debug("Rejected %s: not the top card of %s", card, location.describe())
            return None
        return location

    def _take_from(self, origin: Location) -> Card:
        if origin.kind == LocationKind.TABLEAU:
            card = self.tableaus[origin.position].get_from_top()
        else:
            card = self.cells.clear(origin.position)
        assert card is not None  # noqa: S101
        return card

    def _record(self, cards: list[Card], origin: Location, destination: Location) -> None:
        record = MoveRecord(cards[0], origin, destination, num_cards=len(cards))
        self.history.push(record)
        for card in cards:
            self._locations[card] = destination
        logger.debug("Moved %s", record)

    def move_to_foundation(self, card: Card) -> bool:
        origin = self._movable_origin(card)
        if origin is None:
            return False

        for foundation_idx, foundation in enumerate(self.foundations):
            if foundation.can_accept(card):
                moved = self._take_from(origin)
                added = foundation.add(moved)
                assert added  # noqa: S101
                self._record([moved], origin, Location.foundations()[foundation_idx])
                return True

        logger.debug("Rejected %s: no foundation accepts it", card)
        return False

    def move_to_free_cell(self, card: Card, cell_index: int = -1) -> bool:
        if cell_index < 0:
            cell_index = self.cells.first_empty()
            if cell_index < 0:
                logger.debug("Rejected %s: no empty free cell", card)
                return False
        if cell_index >= len(self.cells):
            logger.debug("Rejected %s: free cell %d does not exist", card, cell_index)
            return False
        if not self.cells.is_empty(cell_index):
            logger.debug("Rejected %s: free cell %d is occupied", card, cell_index + 1)
            return False

        origin = self._movable_origin(card)
        if origin is None:
            return False

        moved = self._take_from(origin)
        self.cells.put(cell_index, moved)
        self._record([moved], origin, Location.free_cells()[cell_index])
        return True

    def move_to_tableau(self, card: Card, tableau_idx: int) -> bool:
        if not 0 <= tableau_idx < NUM_COLUMNS:
            logger.debug("Rejected %s: column %d does not exist", card, tableau_idx)
            return False

        origin = self._movable_origin(card)
        if origin is None:
            return False
        destination = Location.tableaus()[tableau_idx]
        if origin == destination:
            logger.debug("Rejected %s: already in %s", card, destination.describe())
            return False

        tableau = self.tableaus[tableau_idx]
        if not tableau.can_accept(card):
            logger.debug("Rejected %s: %s does not accept it", card, destination.describe())
            return False

        moved = self._take_from(origin)
        tableau.add_forced(moved)
        self._record([moved], origin, destination)
        return True

    def move_stack_to_tableau(self, stack: Sequence[Card], from_tableau_idx: int, to_tableau_idx: int) -> bool:
        """Move a run, given bottom-most card first, from one column onto another."""
        cards = list(stack)
        if len(cards) == 0:
            logger.debug("Rejected stack move: no cards given")
            return False
        if not (0 <= from_tableau_idx < NUM_COLUMNS and 0 <= to_tableau_idx < NUM_COLUMNS):
            logger.debug("Rejected stack move: column %d -> %d out of range", from_tableau_idx, to_tableau_idx)
            return False
        if from_tableau_idx == to_tableau_idx:
            logger.debug("Rejected stack move: origin and destination are both column %d", to_tableau_idx + 1)
            return False

        from_tableau = self.tableaus[from_tableau_idx]
        to_tableau = self.tableaus[to_tableau_idx]
        if not from_tableau.is_movable_stack(cards):
            logger.debug("Rejected stack move: %s is not a movable run of column %d", cards, from_tableau_idx + 1)
            return False
        if not to_tableau.can_accept(cards[0]):
            logger.debug("Rejected stack move: column %d does not accept %s", to_tableau_idx + 1, cards[0])
            return False

        moved = from_tableau.get_multiple_from_top(len(cards))
        to_tableau.add_multiple_to_top(moved)
        self._record(moved, Location.tableaus()[from_tableau_idx], Location.tableaus()[to_tableau_idx])
        return True

    def undo(self) -> bool:
        action = self.history.pop()
        if action is None:
            return False

        self.state = EightOffState.PLAYING

        destination = action.destination
        if destination.kind == LocationKind.FREE_CELL:
            from_cell = self.cells.clear(destination.position)
            assert from_cell is not None  # noqa: S101
            returning = [from_cell]
        elif destination.kind == LocationKind.FOUNDATION:
            from_top = self.foundations[destination.position].get_from_top()
            assert from_top is not None  # noqa: S101
            returning = [from_top]
        else:
            returning = self.tableaus[destination.position].get_multiple_from_top(action.num_cards)

        origin = action.origin
        if origin.kind == LocationKind.TABLEAU:
            for card in returning:
                self.tableaus[origin.position].add_forced(card)
        else:
            self.cells.put(origin.position, returning[0])

        for card in returning:
            self._locations[card] = origin
        logger.debug("Undid %s", action)
        return True

    def _foundation_for(self, card: Card) -> int:
        for foundation_idx, foundation in enumerate(self.foundations):
            if foundation.can_accept(card):
                return foundation_idx
        return -1

    def find_hint(self) -> Hint | None:
        for cell_idx, card in self.cells.occupied():
            foundation_idx = self._foundation_for(card)
            if foundation_idx >= 0:
                return Hint(Location.free_cells()[cell_idx], Location.foundations()[foundation_idx], card)

        for tableau_idx, tableau in enumerate(self.tableaus):
            card = tableau.inspect_top()
            if card is None:
                continue
            foundation_idx = self._foundation_for(card)
            if foundation_idx >= 0:
                return Hint(
                    Location.tableaus()[tableau_idx],
                    Location.foundations()[foundation_idx],
                    card,
                )

        for cell_idx, card in self.cells.occupied():
            for tableau_idx, tableau in enumerate(self.tableaus):
                if tableau.can_accept(card):
                    return Hint(Location.free_cells()[cell_idx], Location.tableaus()[tableau_idx], card)

        for tableau_idx, tableau in enumerate(self.tableaus):
            start = tableau.run_start_index()
            if start < 0:
                continue
            for card_idx in range(start, len(tableau)):
                bottom = tableau.cards[card_idx]
                for other_idx, other in enumerate(self.tableaus):
                    if other_idx == tableau_idx:
                        continue
                    if other.can_accept(bottom):
                        return Hint(
                            Location.tableaus()[tableau_idx],
                            Location.tableaus()[other_idx],
                            bottom,
                            num_cards=len(tableau) - card_idx,
                            change_index=card_idx,
                        )

        empty_cell = self.cells.first_empty()
        if empty_cell >= 0:
            for tableau_idx, tableau in enumerate(self.tableaus):
                if len(tableau) < 2:  # noqa: PLR2004
                    continue
                top_card = tableau.cards[-1]
                beneath = tableau.cards[-2]
                unlocked = self._foundation_for(beneath) >= 0 or any(
                    other.can_accept(beneath) for other_idx, other in enumerate(self.tableaus) if other_idx != tableau_idx
                )
                if unlocked:
                    return Hint(
                        Location.tableaus()[tableau_idx],
                        Location.free_cells()[empty_cell],
                        top_card,
                        unlocks=beneath,
                    )

        return None

    def hint(self) -> str | None:
        found = self.find_hint()
        if found is None:
            return None
        return str(found)

    def is_done(self) -> bool:
        return all(foundation.is_complete() for foundation in self.foundations)

    def _has_destination_for(self, card: Card) -> bool:
        if self._foundation_for(card) >= 0:
            return True
        if any(tableau.can_accept(card) for tableau in self.tableaus):
            return True
        return self.cells.first_empty() >= 0

    def check_game_end(self) -> str | None:
        """Return the end-of-game message, or None while some single card can still move.

        Only column tops and free-cell cards are considered; runs that could
        move as a stack do not keep the game alive.
        """
        if self.is_done():
            self.state = EightOffState.WON
            logger.info("Game won after %d moves", len(self.history))
            return WIN_MESSAGE

        for tableau in self.tableaus:
            top_card = tableau.inspect_top()
            if top_card is not None and self._has_destination_for(top_card):
                return None

        for _, card in self.cells.occupied():
            if self._has_destination_for(card):
                return None

        self.state = EightOffState.LOST
        logger.info("Game lost after %d moves", len(self.history))
        return LOSS_MESSAGE

    def get_all_legal_actions(self) -> list[Action]:
        suggestions: list[Action] = []
        first_empty_cell = self.cells.first_empty()

        for cell_idx, card in self.cells.occupied():
            foundation_idx = self._foundation_for(card)
            if foundation_idx >= 0:
                suggestions.append(Action(Location.free_cells()[cell_idx], Location.foundations()[foundation_idx]))
            for tableau_idx, tableau in enumerate(self.tableaus):
                if tableau.can_accept(card):
                    suggestions.append(Action(Location.free_cells()[cell_idx], Location.tableaus()[tableau_idx]))

        for tableau_idx, tableau in enumerate(self.tableaus):
            tableau_top = tableau.inspect_top()
            if tableau_top is None:
                continue
            foundation_idx = self._foundation_for(tableau_top)
            if foundation_idx >= 0:
                suggestions.append(
                    Action(
                        Location.tableaus()[tableau_idx],
                        Location.foundations()[foundation_idx],
                    ),
                )
            if first_empty_cell >= 0:
                suggestions.append(
                    Action(
                        Location.tableaus()[tableau_idx],
                        Location.free_cells()[first_empty_cell],
                    ),
                )
            for card_idx in range(tableau.run_start_index(), len(tableau)):
                bottom = tableau.cards[card_idx]
                for other_idx, other in enumerate(self.tableaus):
                    if other_idx == tableau_idx:
                        continue
                    if other.can_accept(bottom):
                        suggestions.append(
                            Action(
                                Location.tableaus()[tableau_idx],
                                Location.tableaus()[other_idx],
                                change_index=card_idx,
                            ),
                        )

        return suggestions

    def step(self, action: Action) -> None:
        if action not in self.get_all_legal_actions():
            msg = f"Invalid action {action}"
            raise InvalidMoveError(msg)

        from_location = action.from_location
        to_location = action.to_location
        if from_location.kind == LocationKind.FREE_CELL:
            card = self.cells.get(from_location.position)
        else:
            card = self.tableaus[from_location.position].inspect_top()
        assert card is not None  # noqa: S101

        if to_location.kind == LocationKind.FOUNDATION:
            moved = self.move_to_foundation(card)
        elif to_location.kind == LocationKind.FREE_CELL:
            moved = self.move_to_free_cell(card, to_location.position)
        elif from_location.kind == LocationKind.FREE_CELL:
            moved = self.move_to_tableau(card, to_location.position)
        else:
            from_tableau = self.tableaus[from_location.position]
            moved = self.move_stack_to_tableau(
                from_tableau.cards[action.change_index :],
                from_location.position,
                to_location.position,
            )
        assert moved  # noqa: S101

    def render(self) -> Render:
        return Render(
            state=self.state.value,
            tableaus=tuple(tuple(tableau.cards) for tableau in self.tableaus),
            free_cells=tuple(self.cells.slots),
            foundations=tuple(foundation.inspect_top() for foundation in self.foundations),
            foundation_suits=tuple(foundation.suit for foundation in self.foundations),
            history_depth=len(self.history),
        )

    def copy(self) -> "EightOff":
        return copy.deepcopy(self)

    def as_jsonable_dict(self) -> dict:
        return {
            "state": self.state.value,
            "foundations": [foundation.as_jsonable_dict() for foundation in self.foundations],
            "tableaus": [tableau.as_jsonable_dict() for tableau in self.tableaus],
            "free_cells": self.cells.as_jsonable_dict(),
        }


class GameSession:
    def __init__(self, seed: int | None = None):
        self.initial_game = EightOff(seed)
        self.active_game = copy.deepcopy(self.initial_game)

    def reset_to_initial_game(self):
        self.active_game = copy.deepcopy(self.initial_game)

    def as_jsonable_dict(self) -> dict:
        return {
            "seed": self.initial_game.seed,
            "initial_state": self.initial_game.as_jsonable_dict(),
            "actions": [record.as_jsonable_dict() for record in self.active_game.history],
            "current_state": self.active_game.as_jsonable_dict(),
        }

    def as_json(self) -> str:
        return json.dumps(self.as_jsonable_dict())
