from typing import Dict, Iterable, List

from decider.models import Item


def tally(item: Item, participant_ids: Iterable[str]) -> Dict[str, int]:
    """Bucket every participant's vote on ``item``; a missing vote counts as favor."""
    counts = {'favor': 0, 'neutral': 0, 'against': 0}
    for pid in participant_ids:
        vote = item.votes.get(pid)
        if vote == 'against':
            counts['against'] += 1
        elif vote == 'neutral':
            counts['neutral'] += 1
        else:
            counts['favor'] += 1
    return counts


def rank(items: Iterable[Item], participants, scoring_rules: Dict[str, int]) -> List[dict]:
    """Compute the ordered results for a session.

    Order: score descending, then fewer against votes, then more favor votes,
    then text (case-sensitive). Item id breaks any remaining tie so the order
    is total. Pure: neither argument is mutated.
    """
    participant_ids = list(participants)
    scored = []
    for item in items:
        votes = tally(item, participant_ids)
        score = (votes['favor'] * scoring_rules['favor']
                 + votes['neutral'] * scoring_rules['neutral']
                 + votes['against'] * scoring_rules['against'])
        scored.append({
            'id': item.id,
            'text': item.text,
            'addedBy': item.added_by,
            'score': score,
            'votes': votes,
            'totalParticipants': len(participant_ids),
        })
    scored.sort(key=lambda r: (-r['score'], r['votes']['against'], -r['votes']['favor'], r['text'], r['id']))
    return scored
