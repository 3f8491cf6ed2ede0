"""
Pytest configuration and shared fixtures.
"""

import pytest
from pathlib import Path
import tempfile
import shutil
from typing import Callable, Dict, Generator


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    temp_path = Path(tempfile.mkdtemp())

    yield temp_path

    # Cleanup after test
    shutil.rmtree(temp_path)


@pytest.fixture
def write_project(temp_dir: Path) -> Callable[[str, Dict[str, str]], Path]:
    """Returns a helper that writes {relative path: source} under temp_dir/name."""
    def _write(name: str, files: Dict[str, str]) -> Path:
        root = temp_dir / name
        for relative, source in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(source, encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _write


GO_USERS = '''package users

import (
	"context"
	"errors"
)

// User is an account holder.
type User struct {
	ID   int64
	Name string
}

// CreateUser validates and builds a user.
func CreateUser(name string) (*User, error) {
	if name == "" {
		return nil, errors.New("empty name")
	}
	return &User{Name: name}, nil
}

func FindUser(ctx context.Context, id int64) (*User, error) {
	return nil, nil
}

func helper() {}
'''

PYTHON_USERS_MATCHING = '''from dataclasses import dataclass


@dataclass
class User:
    id: int
    name: str


def create_user(name: str) -> tuple[User, Exception]:
    return User(id=0, name=name), None


def find_user(ctx: Context, id: int) -> tuple[User, Exception]:
    return None, None
'''

PYTHON_USERS_PARTIAL = '''from dataclasses import dataclass


@dataclass
class User:
    id: int
    name: str


def create_user(name: str) -> User:
    return User(id=0, name=name)
'''


@pytest.fixture
def go_reference(write_project) -> Path:
    """A small Go project used as the reference implementation."""
    return write_project("reference", {"go.mod": "module example.com/users\n", "users.go": GO_USERS})


@pytest.fixture
def python_matching_source() -> str:
    return PYTHON_USERS_MATCHING


@pytest.fixture
def python_partial_source() -> str:
    return PYTHON_USERS_PARTIAL
