def vote(client, path, headers, vote_type):
    r = client.post(path, json={"vote_type": vote_type}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def test_answer_vote_toggle(api, client):
    alice = api.make_user("alice")
    bobby = api.make_user("bobby")
    q = api.ask(alice)
    a = api.answer(bobby, q["question_id"])
    path = f"/answers/{a['answer_id']}/vote"

    r = vote(client, path, alice, "upvote")
    assert r == {"action": "added", "vote_type": "upvote", "up_votes": 1, "down_votes": 0}

    # the same vote again withdraws it
    r = vote(client, path, alice, "upvote")
    assert r == {"action": "removed", "vote_type": None, "up_votes": 0, "down_votes": 0}

    vote(client, path, alice, "upvote")
    r = vote(client, path, alice, "downvote")
    assert r == {"action": "changed", "vote_type": "downvote", "up_votes": 0, "down_votes": 1}


def test_counts_across_users(api, client):
    alice = api.make_user("alice")
    bobby = api.make_user("bobby")
    carol = api.make_user("carol")
    q = api.ask(alice)
    path = f"/questions/{q['question_id']}/vote"

    vote(client, path, alice, "upvote")
    vote(client, path, bobby, "upvote")
    r = vote(client, path, carol, "downvote")
    assert (r["up_votes"], r["down_votes"]) == (2, 1)

    stored = client.get(f"/questions/{q['question_id']}", headers=alice).json()
    assert (stored["up_votes"], stored["down_votes"]) == (2, 1)


def test_review_votes_track_helpfulness(api, client):
    alice = api.make_user("alice")
    rev = api.make_user("revvy", "student", "reviewer")
    q = api.ask(alice)
    a = api.answer(rev, q["question_id"])
    review = api.review(rev, a["answer_id"])
    path = f"/reviews/{review['review_id']}/vote"

    vote(client, path, alice, "upvote")
    r = vote(client, path, rev, "downvote")
    assert (r["up_votes"], r["down_votes"]) == (1, 1)

    reviews = client.get(f"/answers/{a['answer_id']}/reviews", headers=alice).json()
    assert reviews[0]["helpful_count"] == 1
    assert reviews[0]["not_helpful_count"] == 1


def test_invalid_vote_type(api, client):
    alice = api.make_user("alice")
    q = api.ask(alice)
    r = client.post(f"/questions/{q['question_id']}/vote", json={"vote_type": "sideways"}, headers=alice)
    assert r.status_code == 422


def test_vote_on_missing_target(api, client):
    alice = api.make_user("alice")
    r = client.post("/answers/42/vote", json={"vote_type": "upvote"}, headers=alice)
    assert r.status_code == 404
