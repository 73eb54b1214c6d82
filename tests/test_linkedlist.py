import pytest

from mitosha.linkedlist import LinkedList, ListNode


def by_value(a, b):
    return a - b


def values(lst):
    return [node.value for node in lst]


def test_list_operations_sequence():
    n1, n2, n3, n4, n5, n6 = (ListNode(i) for i in range(1, 7))
    lst = LinkedList()

    # 5 -> 1
    lst.push_back(n5)
    lst.insert_after(n5, n1)
    assert n5.next is n1
    assert n5.last() is n1
    assert n1.last() is n1
    assert n1.first() is n5

    # 5 -> 3 -> 1
    lst.insert_before(n1, n3)
    assert n5.next is n3
    assert n5.last() is n1
    assert n1.prev is n3
    assert n3.first() is n5

    # 1 -> 3 -> 5
    lst.swap(n5, n1)
    assert n1.next is n3
    assert n1.last() is n5
    assert n5.prev is n3
    assert n3.first() is n1

    # 5 -> 3 -> 1
    lst.swap(n5, n1)
    assert n5.next is n3
    assert n5.last() is n1
    assert n1.prev is n3
    assert n3.first() is n5

    # 2 -> 5 -> 3 -> 1
    lst.push_front(n2)
    assert n2.prev is None
    assert n2.last() is n1
    assert n5.prev is n2
    assert n3.first() is n2

    # 2 -> 5 -> 3 -> 1 -> 4
    lst.push_back(n4)
    assert n4.next is None
    assert n2.last() is n4
    assert n4.prev is n1
    assert n1.next is n4
    assert n4.first() is n2

    # 2 -> 5 -> 1 -> 4
    lst.remove(n3)
    assert n5.next is n1
    assert n1.prev is n5

    # 2 -> 6 -> 1 -> 4
    lst.replace(n5, n6)
    assert n6.next is n1
    assert n1.prev is n6
    assert n6.prev is n2

    # 2 -> 1 -> 6 -> 4
    lst.swap(n6, n1)
    assert n1.next is n6
    assert n6.prev is n1
    assert n6.next is n4

    # 2 -> 6 -> 1 -> 4
    lst.swap(n6, n1)
    assert n6.next is n1
    assert n1.prev is n6
    assert n1.next is n4
    assert n6.prev is n2

    assert lst.front() is n2
    assert lst.back() is n4
    assert values(lst) == [2, 6, 1, 4]

    lst.sort(by_value)
    assert values(lst) == [1, 2, 4, 6]
    assert lst.front() is n1
    assert lst.back() is n6


def test_sort_is_stable():
    n1 = ListNode(1)
    n2 = ListNode(2)
    n3 = ListNode(2)
    n4 = ListNode(3)
    lst = LinkedList()

    for node in (n2, n1, n4, n3):
        lst.push_back(node)

    assert lst.front() is n2
    assert n2.next is n1
    assert n1.next is n4
    assert n4.next is n3
    assert lst.back() is n3

    lst.sort(by_value)
    assert lst.front() is n1
    assert n1.next is n2
    assert n2.next is n3
    assert n3.next is n4
    assert lst.back() is n4
    assert n1.prev is None
    assert n4.next is None
    assert n3.prev is n2


def test_sort_empty_list_stays_empty():
    lst = LinkedList()
    lst.sort(by_value)
    assert lst.front() is None
    assert lst.back() is None


def test_lookup_finds_first_equal():
    lst = LinkedList()
    a, b, c = ListNode(7), ListNode(9), ListNode(9)
    for node in (a, b, c):
        lst.push_back(node)
    assert lst.lookup(9, by_value) is b
    assert lst.lookup(7, by_value) is a
    assert lst.lookup(100, by_value) is None


def test_remove_only_node_empties_list():
    lst = LinkedList()
    node = ListNode("x")
    lst.push_front(node)
    assert lst.front() is node and lst.back() is node
    lst.remove(node)
    assert lst.front() is None
    assert lst.back() is None
    assert node.next is None and node.prev is None


def test_replace_front_and_back():
    lst = LinkedList()
    a, b = ListNode(1), ListNode(2)
    lst.push_back(a)
    lst.replace(a, b)
    assert lst.front() is b
    assert lst.back() is b
    assert a.next is None and a.prev is None


def test_iteration_survives_removal():
    lst = LinkedList()
    for i in range(6):
        lst.push_back(ListNode(i))
    for node in lst:
        if node.value % 2:
            lst.remove(node)
    assert values(lst) == [0, 2, 4]
    assert [n.value for n in [lst.back(), lst.back().prev]] == [4, 2]


@pytest.mark.parametrize(
    "first,second,expected",
    [(0, 3, [3, 1, 2, 0]), (1, 2, [0, 2, 1, 3]), (2, 1, [0, 2, 1, 3]), (3, 0, [3, 1, 2, 0])],
)
def test_swap_positions(first, second, expected):
    lst = LinkedList()
    nodes = [ListNode(i) for i in range(4)]
    for node in nodes:
        lst.push_back(node)
    lst.swap(nodes[first], nodes[second])
    assert values(lst) == expected
    backwards = []
    node = lst.back()
    while node is not None:
        backwards.append(node.value)
        node = node.prev
    assert backwards == list(reversed(expected))