from conftest import login_as


def test_home(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Library Catalog Backend'


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200


def test_unknown_route_is_json(client):
    response = client.get('/api/nowhere')
    assert response.status_code == 404
    assert 'error' in response.get_json()


def test_login_and_session_roundtrip(client):
    user = login_as(client, 'user1', 'pass123')
    assert user['fullName'] == 'Jane Smith'
    assert 'password' not in user

    response = client.get('/api/session')
    assert response.status_code == 200
    assert response.get_json()['user']['id'] == user['id']

    assert client.post('/api/logout').status_code == 200
    assert client.get('/api/session').status_code == 401


def test_login_invalid_credentials(client):
    response = client.post('/api/login', json={'username': 'user1', 'password': 'nope'})
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Invalid username or password'}


def test_login_missing_fields(client):
    response = client.post('/api/login', json={'username': 'user1'})
    assert response.status_code == 400


def test_register_logs_in(client):
    response = client.post('/api/register', json={'username': 'newbie', 'password': 'pw', 'fullName': 'New Reader'})
    assert response.status_code == 201
    assert response.get_json()['user']['role'] == 'user'
    assert client.get('/api/session').get_json()['user']['username'] == 'newbie'


def test_register_duplicate(client):
    response = client.post('/api/register', json={'username': 'user2', 'password': 'pw', 'fullName': 'Copy Cat'})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Username already exists'}


def test_books_require_login(client):
    assert client.get('/api/books').status_code == 401


def test_search_books(patron_client):
    response = patron_client.get('/api/books', query_string={'search': 'orwell'})
    assert response.status_code == 200
    assert [b['title'] for b in response.get_json()] == ['1984']
    assert len(patron_client.get('/api/books').get_json()) == 10


def test_patron_cannot_manage_books(patron_client):
    response = patron_client.post('/api/books', json={'title': 'X', 'author': 'Y', 'isbn': '1', 'totalCopies': 1})
    assert response.status_code == 403
    assert patron_client.delete('/api/books/1').status_code == 403


def test_librarian_manages_books(librarian_client):
    response = librarian_client.post('/api/books', json={
        'title': 'Dune', 'author': 'Frank Herbert', 'isbn': '9780441172719', 'genre': 'Science Fiction',
        'totalCopies': 2,
    })
    assert response.status_code == 201
    book = response.get_json()
    assert book['createdBy'] == 2
    assert book['availableCopies'] == 2

    response = librarian_client.put(f"/api/books/{book['id']}", json={'totalCopies': 4})
    assert response.status_code == 200
    assert response.get_json()['availableCopies'] == 4
    assert response.get_json()['title'] == 'Dune'

    assert librarian_client.delete(f"/api/books/{book['id']}").status_code == 200
    assert librarian_client.get(f"/api/books/{book['id']}").status_code == 404


def test_create_book_validation_error(librarian_client):
    response = librarian_client.post('/api/books', json={'title': 'Half a book'})
    assert response.status_code == 400
    assert response.get_json()['error'].startswith('Missing required fields')


def test_update_missing_book(librarian_client):
    response = librarian_client.put('/api/books/999', json={'totalCopies': 4})
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Book not found'}


def test_borrow_and_return_flow(patron_client):
    response = patron_client.post('/api/books/2/borrow')
    assert response.status_code == 201
    tx = response.get_json()
    assert tx['status'] == 'borrowed'
    assert tx['isOverdue'] is False
    assert patron_client.get('/api/books/2').get_json()['availableCopies'] == 1

    history = patron_client.get('/api/transactions/me').get_json()
    assert [t['id'] for t in history] == [tx['id']]

    response = patron_client.post(f"/api/transactions/{tx['id']}/return")
    assert response.status_code == 200
    assert response.get_json()['status'] == 'returned'
    assert patron_client.get('/api/books/2').get_json()['availableCopies'] == 2

    response = patron_client.post(f"/api/transactions/{tx['id']}/return")
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Book is already returned'}


def test_borrow_until_empty(patron_client):
    assert patron_client.post('/api/books/2/borrow').status_code == 201
    assert patron_client.post('/api/books/2/borrow').status_code == 201
    response = patron_client.post('/api/books/2/borrow')
    assert response.status_code == 400
    assert response.get_json() == {'error': 'No copies available'}


def test_borrow_missing_book(patron_client):
    response = patron_client.post('/api/books/999/borrow')
    assert response.status_code == 404


def test_patron_cannot_return_someone_elses_loan(client):
    login_as(client, 'user1', 'pass123')
    tx = client.post('/api/books/1/borrow').get_json()
    client.post('/api/logout')

    login_as(client, 'user2', 'pass123')
    assert client.post(f"/api/transactions/{tx['id']}/return").status_code == 403
    client.post('/api/logout')

    login_as(client, 'librarian', 'lib123')
    assert client.post(f"/api/transactions/{tx['id']}/return").status_code == 200


def test_return_missing_transaction(patron_client):
    response = patron_client.post('/api/transactions/42/return')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Transaction record not found'}


def test_staff_views(client):
    login_as(client, 'user1', 'pass123')
    client.post('/api/books/3/borrow')
    client.post('/api/logout')

    login_as(client, 'librarian', 'lib123')
    patrons = client.get('/api/users', query_string={'role': 'user'}).get_json()
    assert [u['username'] for u in patrons] == ['user1', 'user2']
    assert all('password' not in u for u in client.get('/api/users').get_json())

    history = client.get('/api/users/3/history').get_json()
    assert [t['bookId'] for t in history] == [3]
    assert len(client.get('/api/users/1/books').get_json()) == 10
    assert client.get('/api/users/99/books').status_code == 404

    assert client.get('/api/users/staff').status_code == 403
    response = client.post('/api/users/staff', json={'username': 'x', 'password': 'y', 'fullName': 'Z', 'role': 'librarian'})
    assert response.status_code == 403


def test_patron_cannot_list_users(patron_client):
    assert patron_client.get('/api/users').status_code == 403


def test_admin_creates_staff(admin_client):
    response = admin_client.post('/api/users/staff', json={
        'username': 'headlib', 'password': 'pw', 'fullName': 'Head Librarian', 'role': 'librarian',
    })
    assert response.status_code == 201
    assert response.get_json()['user']['role'] == 'librarian'

    staff = admin_client.get('/api/users/staff').get_json()
    assert [u['username'] for u in staff] == ['admin', 'librarian', 'headlib']

    response = admin_client.post('/api/users/staff', json={
        'username': 'headlib', 'password': 'pw', 'fullName': 'Head Librarian', 'role': 'librarian',
    })
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Username already exists'}


def test_overdue_report_job(client):
    from app import report_overdue_loans
    login_as(client, 'user1', 'pass123')
    client.post('/api/books/1/borrow')
    assert report_overdue_loans() == []


def test_numeric_genre_rejected_and_search_still_works(librarian_client):
    response = librarian_client.post('/api/books', json={
        'title': 'Odd', 'author': 'Someone', 'isbn': '123', 'genre': 42, 'totalCopies': 1,
    })
    assert response.status_code == 400
    assert response.get_json() == {'error': 'genre must be a string'}

    response = librarian_client.get('/api/books', query_string={'search': 'zzz'})
    assert response.status_code == 200
    assert response.get_json() == []


def test_register_with_numeric_password(client):
    response = client.post('/api/register', json={'username': 'n', 'password': 12345, 'fullName': 'N'})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Password is required'}


def test_staff_with_numeric_username(admin_client):
    response = admin_client.post('/api/users/staff', json={
        'username': 99, 'password': 'pw', 'fullName': 'Nine Nine', 'role': 'librarian',
    })
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Username is required'}


def test_failed_loan_write_is_not_replayed(patron_client, monkeypatch):
    import store
    from sqlalchemy.exc import OperationalError

    real_write_slot = store.write_slot
    calls = []

    def failing_write_slot(key, items):
        calls.append(key)
        if key == store.TRANSACTIONS_KEY:
            raise OperationalError('UPDATE store_slot', {}, Exception('connection lost'))
        return real_write_slot(key, items)

    monkeypatch.setattr(store, 'write_slot', failing_write_slot)
    response = patron_client.post('/api/books/1/borrow')
    assert response.status_code == 500
    assert calls == [store.BOOKS_KEY, store.TRANSACTIONS_KEY]

    monkeypatch.setattr(store, 'write_slot', real_write_slot)
    assert patron_client.get('/api/books/1').get_json()['availableCopies'] == 2
