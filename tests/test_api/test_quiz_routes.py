import json

from coursequiz.errors import TRY_AGAIN_MESSAGE


QUIZ_COMPLETION = "```json\n" + json.dumps({"questions": [
    {
        "question": f"Question {index + 1}?",
        "options": ["Alpha", "Beta", "Gamma", "Delta"],
        "correctAnswer": "Beta",
        "explanation": "Beta is right.",
    }
    for index in range(5)
]}) + "\n```"

GENERATE_PAYLOAD = {
    "userId": "user-1",
    "courseId": "course-1",
    "chapterId": "chapter-1",
    "content": {"title": "Cells", "description": "The basic unit of life."},
}


def submit(client, correct=2, total=3, chapter_id="chapter-1"):
    answers = [
        {
            "question": f"Question {index + 1}?",
            "userAnswer": "Beta" if index < correct else "Alpha",
            "correctAnswer": "Beta",
        }
        for index in range(total)
    ]
    return client.post('/api/quiz/results', json={
        "userId": "user-1",
        "courseId": "course-1",
        "chapterId": chapter_id,
        "answers": answers,
    })


def test_generate_quiz_success(client, mock_model, make_completion):
    mock_model.generate_content.return_value = make_completion(QUIZ_COMPLETION)

    response = client.post('/api/quiz', json=GENERATE_PAYLOAD)

    assert response.status_code == 200
    data = response.json()
    assert data['totalQuestions'] == 5
    assert data['difficulty'] == "beginner"
    assert data['attemptsRemaining'] == 3
    assert data['fallback'] is False
    assert data['questions'][0]['correctAnswer'] == "Beta"
    assert data['questions'][0]['options'] == ["Alpha", "Beta", "Gamma", "Delta"]

    prompt = mock_model.generate_content.call_args[0][0]
    assert "The basic unit of life." in prompt


def test_generate_quiz_parse_failure(client, mock_model, make_completion):
    mock_model.generate_content.return_value = make_completion("I cannot make a quiz from this.")

    response = client.post('/api/quiz', json=GENERATE_PAYLOAD)

    assert response.status_code == 502
    assert response.json()['error'] == "parse_failed"
    assert response.json()['message'] == TRY_AGAIN_MESSAGE


def test_generate_quiz_request_failure(client, mock_model):
    mock_model.generate_content.side_effect = RuntimeError("service unavailable")

    response = client.post('/api/quiz', json=GENERATE_PAYLOAD)

    assert response.status_code == 502
    assert response.json()['error'] == "request_failed"
    assert response.json()['message'] == TRY_AGAIN_MESSAGE


def test_generate_quiz_missing_content(client):
    payload = {key: value for key, value in GENERATE_PAYLOAD.items() if key != "content"}

    response = client.post('/api/quiz', json=payload)

    assert response.status_code == 422


def test_submit_results_records_attempt_and_awards_xp(client):
    response = submit(client, correct=2, total=3)

    assert response.status_code == 201
    data = response.json()
    assert data['score'] == 2
    assert data['totalQuestions'] == 3
    assert data['xp'] == 2
    assert [answer['isCorrect'] for answer in data['answers']] == [True, True, False]
    assert data['feedback'] == "Keep practicing to improve your understanding!"

    xp = client.get('/api/users/user-1/xp').json()
    assert xp == {"userId": "user-1", "xp": 2, "difficulty": "beginner"}


def test_attempts_and_history(client):
    submit(client, correct=1, total=3)
    submit(client, correct=3, total=3)
    submit(client, correct=3, total=3, chapter_id="chapter-2")

    attempts = client.post('/api/quiz/attempts', json={"userId": "user-1", "chapterId": "chapter-1"})
    assert attempts.json() == {"attempts": 2}

    history = client.get('/api/quiz/history', params={"userId": "user-1", "chapterId": "chapter-1"}).json()
    assert history['attemptCount'] == 2
    assert [entry['score'] for entry in history['history']] == [3, 1]
    assert len(history['history'][0]['answers']) == 3


def test_snake_case_input_is_accepted_and_camel_case_returned(client):
    response = client.post('/api/quiz/results', json={
        "user_id": "user-1",
        "course_id": "course-1",
        "chapter_id": "chapter-1",
        "answers": [{"question": "Q?", "user_answer": "Beta", "correct_answer": "beta"}],
    })

    assert response.status_code == 201
    data = response.json()
    assert data['userId'] == "user-1"
    assert data['chapterId'] == "chapter-1"
    assert "user_id" not in data
    assert data['answers'][0] == {
        "question": "Q?",
        "userAnswer": "Beta",
        "correctAnswer": "beta",
        "isCorrect": True,
    }


def test_generate_refused_after_three_attempts(client, mock_model, make_completion):
    mock_model.generate_content.return_value = make_completion(QUIZ_COMPLETION)
    for _ in range(3):
        assert submit(client).status_code == 201

    response = client.post('/api/quiz', json=GENERATE_PAYLOAD)

    assert response.status_code == 429
    assert response.json()['error'] == "attempt_limit_reached"
    mock_model.generate_content.assert_not_called()


def test_difficulty_rises_with_xp(client, mock_model, make_completion, fake_redis):
    fake_redis.hset("user:user-1", "xp", 75)
    mock_model.generate_content.return_value = make_completion(QUIZ_COMPLETION)

    response = client.post('/api/quiz', json=GENERATE_PAYLOAD)

    assert response.json()['difficulty'] == "advanced"
    assert "advanced level quiz" in mock_model.generate_content.call_args[0][0]


def test_health_check(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.json()['status'] == "healthy"
