"""
Kinship term inference.

The relationship between two members is found by path tracing: both ancestry
paths are walked up to their roots, the lowest common ancestor (LCA) is the
first id on the center's path that also appears on the target's path, and the
pair (generations up from the center, generations down to the target) selects
the term. Only direct lines up to four generations and collaterals up to first
cousins get a specific term; everything else is an "extended relative".

Uncle/aunt and cousin terms always use the paternal-line words, since a member
only records one parent.
"""

from graph import ancestry_path, index_members
from models import FEMALE, MALE, Person
from parsing import birth_sort_key, is_born_before

ZH_NUMERALS = ["零", "一", "二", "三", "四", "五", "六", "七", "八", "九"]
EN_ORDINALS = ["", "eldest", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth"]

VOCABULARIES = {
    "zh": {
        "self": "本尊",
        "ancestors": {1: "父亲", 2: "祖父", 3: "曾祖", 4: "高祖"},
        "ancestor_n": "{n}世祖",
        "eldest_child": "长",
        "eldest_sibling": "大",
        "son": "{rank}子",
        "daughter": "{rank}女",
        "grandson": "孙子",
        "granddaughter": "孙女",
        "descendant_n": "{n}世孙",
        "elder_brother": "{rank}兄",
        "younger_brother": "{rank}弟",
        "elder_sister": "{rank}姐",
        "younger_sister": "{rank}妹",
        "elder_uncle": "{rank}伯",
        "uncle": "{rank}叔",
        "aunt": "{rank}姑",
        "nephew": "侄子",
        "niece": "侄女",
        "elder_cousin_brother": "堂兄",
        "younger_cousin_brother": "堂弟",
        "elder_cousin_sister": "堂姐",
        "younger_cousin_sister": "堂妹",
        "extended": "族亲",
    },
    "en": {
        "self": "self",
        "ancestors": {1: "father", 2: "grandfather", 3: "great-grandfather", 4: "great-great-grandfather"},
        "ancestor_n": "{n}-generation ancestor",
        "eldest_child": "eldest",
        "eldest_sibling": "eldest",
        "son": "{rank} son",
        "daughter": "{rank} daughter",
        "grandson": "grandson",
        "granddaughter": "granddaughter",
        "descendant_n": "{n}-generation descendant",
        "elder_brother": "{rank} elder brother",
        "younger_brother": "{rank} younger brother",
        "elder_sister": "{rank} elder sister",
        "younger_sister": "{rank} younger sister",
        "elder_uncle": "{rank} elder uncle",
        "uncle": "{rank} uncle",
        "aunt": "{rank} paternal aunt",
        "nephew": "nephew",
        "niece": "niece",
        "elder_cousin_brother": "elder cousin-brother",
        "younger_cousin_brother": "younger cousin-brother",
        "elder_cousin_sister": "elder cousin-sister",
        "younger_cousin_sister": "younger cousin-sister",
        "extended": "extended relative",
    },
}


def _vocabulary(locale: str) -> dict:
    try:
        return VOCABULARIES[locale]
    except KeyError:
        raise ValueError(f"Unsupported kinship locale: {locale!r}") from None


def rank_word(rank: int, locale: str = "zh", eldest: str | None = None) -> str:
    """
    Ordinal word for a sibling rank.

    Rank 1 renders with `eldest` (the locale's sibling marker by default),
    ranks 2-9 with the numeral word and anything larger as a plain number.
    """
    vocab = _vocabulary(locale)
    if rank == 1:
        return eldest if eldest is not None else vocab["eldest_sibling"]
    if 2 <= rank <= 9:
        return ZH_NUMERALS[rank] if locale == "zh" else EN_ORDINALS[rank]
    return str(rank) if locale == "zh" else f"{rank}th"


def sibling_rank(person: Person, members: list[Person]) -> int:
    """
    1-based birth order of `person` among members with the same parent and gender.

    Members without a parent rank 1. Equal birth dates are ordered by id so the
    ranks of a sibling group always form a permutation of 1..N.
    """
    if person.parent_id is None:
        return 1

    siblings = [m for m in members if m.parent_id == person.parent_id and m.gender == person.gender]
    if not any(m.id == person.id for m in siblings):
        siblings.append(person)

    siblings.sort(key=lambda m: (birth_sort_key(m), m.id))
    return next(i for i, m in enumerate(siblings, start=1) if m.id == person.id)


def find_lowest_common_ancestor(
    target: Person, center: Person, members_by_id: dict[str, Person]
) -> tuple[str, int, int] | None:
    """
    Returns (lca_id, up, down): `up` generations from center to the LCA and
    `down` generations from the LCA to target. None when the two members are in
    unconnected trees.
    """
    center_path = ancestry_path(center, members_by_id)
    target_path = ancestry_path(target, members_by_id)
    target_index = {member_id: i for i, member_id in enumerate(target_path)}

    for up, member_id in enumerate(center_path):
        if member_id in target_index:
            return member_id, up, target_index[member_id]
    return None


def relationship_label(
    target: Person, center: Person, members: list[Person], locale: str = "zh"
) -> str | None:
    """
    Kinship term describing `target` from the point of view of `center`.

    `members` is the active member set. Returns None when the two members share
    no ancestor.
    """
    vocab = _vocabulary(locale)
    if target.id == center.id:
        return vocab["self"]

    members_by_id = index_members(members)
    found = find_lowest_common_ancestor(target, center, members_by_id)
    if found is None:
        return None
    _, up, down = found

    is_male = target.gender == MALE
    is_female = target.gender == FEMALE

    # Direct ancestor
    if down == 0:
        return vocab["ancestors"].get(up) or vocab["ancestor_n"].format(n=up)

    # Direct descendant
    if up == 0:
        if down == 1:
            rank = rank_word(sibling_rank(target, members), locale, eldest=vocab["eldest_child"])
            return vocab["daughter" if is_female else "son"].format(rank=rank)
        if down == 2:
            return vocab["granddaughter" if is_female else "grandson"]
        return vocab["descendant_n"].format(n=down)

    # Siblings
    if up == 1 and down == 1:
        rank = rank_word(sibling_rank(target, members), locale)
        elder = is_born_before(target, center)
        if is_male:
            key = "elder_brother" if elder else "younger_brother"
        else:
            key = "elder_sister" if elder else "younger_sister"
        return vocab[key].format(rank=rank)

    # Father's siblings
    if up == 2 and down == 1:
        rank = rank_word(sibling_rank(target, members), locale)
        if is_male:
            father = members_by_id.get(center.parent_id)
            if father is not None and is_born_before(target, father):
                return vocab["elder_uncle"].format(rank=rank)
            return vocab["uncle"].format(rank=rank)
        return vocab["aunt"].format(rank=rank)

    # Siblings' children
    if up == 1 and down == 2:
        return vocab["nephew" if is_male else "niece"]

    # First cousins
    if up == 2 and down == 2:
        elder = is_born_before(target, center)
        if is_male:
            key = "elder_cousin_brother" if elder else "younger_cousin_brother"
        else:
            key = "elder_cousin_sister" if elder else "younger_cousin_sister"
        return vocab[key]

    return vocab["extended"]


def relationship_label_by_id(
    target_id: str, center_id: str, members: list[Person], locale: str = "zh"
) -> str | None:
    """Look both members up in the active set and label their relationship."""
    by_id = index_members(members)
    target = by_id.get(target_id)
    center = by_id.get(center_id)
    if target is None or center is None:
        return None
    return relationship_label(target, center, members, locale)
